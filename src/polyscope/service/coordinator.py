"""Validation coordinator: debounced, revision-guarded validation per document."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Protocol

from polyscope.analysis.context import context_at
from polyscope.analysis.publisher import DiagnosticPublisher
from polyscope.analysis.reconciler import SnapshotReconciler, document_kind
from polyscope.analysis.vocabulary import Suggestion, suggestions_for
from polyscope.models.context import EditorContext
from polyscope.models.diagnostics import DiagnosticSet
from polyscope.models.document import DocumentKind, DocumentSnapshot, Position
from polyscope.models.snapshot import SnapshotNode
from polyscope.service.documents import DocumentNotFoundError, DocumentStore
from polyscope.service.oracle import find_workspace_root

logger = logging.getLogger("polyscope.coordinator")


class SnapshotSource(Protocol):
    """Anything that can produce a workspace snapshot (normally the CLI)."""

    async def fetch_snapshot(
        self, root: Path, entity: str | None = None
    ) -> SnapshotNode | None: ...


class ValidationCoordinator:
    """Single owner of all open documents.

    Each document has at most one validation task.  Edits arriving while it
    runs do not start a second CLI call: the task picks up the newest
    revision once the current one finishes.  A result whose revision is no
    longer current when it arrives is discarded.  Context queries are
    synchronous and never wait on validation.
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        oracle: SnapshotSource | None = None,
        publisher: DiagnosticPublisher | None = None,
        reconciler: SnapshotReconciler | None = None,
        debounce_seconds: float = 0.3,
    ) -> None:
        self._store = store or DocumentStore()
        self._oracle = oracle
        self._publisher = publisher or DiagnosticPublisher()
        self._reconciler = reconciler or SnapshotReconciler()
        self._debounce = debounce_seconds
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def publisher(self) -> DiagnosticPublisher:
        return self._publisher

    # -- document lifecycle --------------------------------------------------

    async def did_open(self, uri: str, text: str) -> DocumentSnapshot:
        document = self._store.open(uri, text)
        self._schedule(uri)
        return document

    async def did_change(self, uri: str, text: str) -> DocumentSnapshot:
        document = self._store.update(uri, text)
        self._schedule(uri)
        return document

    async def did_close(self, uri: str) -> None:
        task = self._tasks.pop(uri, None)
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._locks.pop(uri, None)
        self._store.close(uri)
        self._publisher.forget(uri)

    async def shutdown(self) -> None:
        """Cancel every validation task."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # -- queries -------------------------------------------------------------

    def context_at(self, uri: str, position: Position) -> EditorContext:
        analysis = self._store.analysis(uri)
        return context_at(analysis.document, position, analysis.tracker)

    def suggestions(self, uri: str, position: Position) -> list[Suggestion]:
        analysis = self._store.analysis(uri)
        context = context_at(analysis.document, position, analysis.tracker)
        prefix = analysis.document.line(position.line)[: position.character]
        kind = document_kind(analysis.document, analysis.index)
        return suggestions_for(context, kind, prefix)

    def diagnostics(self, uri: str) -> DiagnosticSet | None:
        """Last published diagnostics of an open document."""
        self._store.get(uri)
        return self._publisher.current(uri)

    # -- validation ----------------------------------------------------------

    async def validate(self, uri: str) -> DiagnosticSet | None:
        """Validate the current revision now, bypassing the debounce.

        Waits for any CLI call already running for *uri*; a revision that
        call has published already is returned without calling the CLI again.
        """
        self._store.get(uri)
        async with self._lock(uri):
            return await self._validate_revision(self._store.get(uri))

    async def wait_idle(self, uri: str) -> None:
        """Wait until the background task for *uri* has finished."""
        task = self._tasks.get(uri)
        if task is not None:
            await asyncio.shield(task)

    def _schedule(self, uri: str) -> None:
        task = self._tasks.get(uri)
        if task is not None and not task.done():
            return
        self._tasks[uri] = asyncio.get_running_loop().create_task(
            self._worker(uri), name=f"validate:{uri}"
        )

    async def _worker(self, uri: str) -> None:
        validated: int | None = None
        while True:
            if self._debounce > 0:
                await asyncio.sleep(self._debounce)
            async with self._lock(uri):
                try:
                    document = self._store.get(uri)
                except DocumentNotFoundError:
                    return
                if document.revision == validated:
                    return
                try:
                    await self._validate_revision(document)
                except DocumentNotFoundError:
                    return
                except Exception:
                    logger.exception("Validation of %s rev %d failed", uri, document.revision)
                validated = document.revision

    def _lock(self, uri: str) -> asyncio.Lock:
        lock = self._locks.get(uri)
        if lock is None:
            lock = self._locks[uri] = asyncio.Lock()
        return lock

    async def _validate_revision(self, document: DocumentSnapshot) -> DiagnosticSet | None:
        published = self._publisher.current(document.uri)
        if published is not None and published.revision == document.revision:
            return published
        snapshot = await self._fetch_snapshot(document)
        if self._store.current_revision(document.uri) != document.revision:
            logger.debug("Discarding stale result for %s rev %d", document.uri, document.revision)
            return None
        analysis = self._store.analysis(document.uri)
        anomalies = self._reconciler.reconcile(document, snapshot, analysis.index)
        return self._publisher.publish(document.uri, document.revision, anomalies, analysis.index)

    async def _fetch_snapshot(self, document: DocumentSnapshot) -> SnapshotNode | None:
        if self._oracle is None or document.kind == DocumentKind.OTHER:
            return None
        path = document.path
        if path is None:
            return None
        root = find_workspace_root(path.parent)
        if root is None:
            logger.info("Could not find workspace root for %s", document.uri)
            return None
        return await self._oracle.fetch_snapshot(root)
