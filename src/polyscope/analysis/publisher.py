"""Diagnostic publishing: anomalies → ranged diagnostics, replaced per revision."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from polyscope.models.diagnostics import Anomaly, Diagnostic, DiagnosticSet
from polyscope.parser.index import EntityIndex

logger = logging.getLogger("polyscope.publisher")


class DiagnosticSink(Protocol):
    """Consumer of diagnostic sets.  Always replaces, never patches."""

    def replace(self, uri: str, diagnostics: DiagnosticSet) -> None: ...

    def clear(self, uri: str) -> None: ...


class InMemoryDiagnosticSink:
    """Keeps the current diagnostic set of every document in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sets: dict[str, DiagnosticSet] = {}

    def replace(self, uri: str, diagnostics: DiagnosticSet) -> None:
        with self._lock:
            self._sets[uri] = diagnostics

    def clear(self, uri: str) -> None:
        with self._lock:
            self._sets.pop(uri, None)

    def get(self, uri: str) -> DiagnosticSet | None:
        with self._lock:
            return self._sets.get(uri)


class DiagnosticPublisher:
    """Maps anomalies onto source ranges and hands complete sets to a sink.

    Remembers the last published revision of every document: publishing an
    older revision is refused, so a slow validation can never overwrite the
    diagnostics of a newer edit.
    """

    def __init__(self, sink: DiagnosticSink | None = None) -> None:
        self._sink = sink if sink is not None else InMemoryDiagnosticSink()
        self._lock = threading.Lock()
        self._last_revision: dict[str, int] = {}
        self._published: dict[str, DiagnosticSet] = {}

    @property
    def sink(self) -> DiagnosticSink:
        return self._sink

    def last_revision(self, uri: str) -> int | None:
        with self._lock:
            return self._last_revision.get(uri)

    def current(self, uri: str) -> DiagnosticSet | None:
        """The set most recently published for *uri*."""
        with self._lock:
            return self._published.get(uri)

    def publish(
        self, uri: str, revision: int, anomalies: list[Anomaly], index: EntityIndex
    ) -> DiagnosticSet | None:
        """Replace the diagnostics of *uri* with those derived from *anomalies*.

        Returns the published set, or ``None`` when *revision* is older than
        the last published one.
        """
        diagnostics = self.to_diagnostics(anomalies, index)
        published = DiagnosticSet(uri=uri, revision=revision, diagnostics=tuple(diagnostics))
        with self._lock:
            last = self._last_revision.get(uri)
            if last is not None and revision < last:
                logger.debug(
                    "Discarding diagnostics for %s rev %d (published: %d)", uri, revision, last
                )
                return None
            self._last_revision[uri] = revision
            self._published[uri] = published
            self._sink.replace(uri, published)
        return published

    def forget(self, uri: str) -> None:
        """Drop all state for *uri* (document closed)."""
        with self._lock:
            self._last_revision.pop(uri, None)
            self._published.pop(uri, None)
            self._sink.clear(uri)

    @staticmethod
    def to_diagnostics(anomalies: list[Anomaly], index: EntityIndex) -> list[Diagnostic]:
        """One diagnostic per anomaly, deduplicated on range + message."""
        seen: set[tuple[object, str]] = set()
        diagnostics: list[Diagnostic] = []
        for anomaly in anomalies:
            source_range = index.locate(
                anomaly.subject_identity,
                anomaly.field,
                anomaly.occurrence,
                anomaly.parent_identity,
                anomaly.line,
            )
            key = (source_range, anomaly.message)
            if key in seen:
                continue
            seen.add(key)
            diagnostics.append(
                Diagnostic(
                    range=source_range,
                    severity=anomaly.severity,
                    code=anomaly.code,
                    message=anomaly.message,
                )
            )
        return diagnostics
