"""Per-document state: immutable snapshots and their cached analyses."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field

from polyscope.models.document import DocumentSnapshot
from polyscope.parser.index import EntityIndex
from polyscope.parser.scope import ScopeTracker


class DocumentNotFoundError(KeyError):
    """Raised when a document URI is not open."""


@dataclass
class DocumentAnalysis:
    """Scope tracker and entity index of one revision, both built lazily."""

    document: DocumentSnapshot
    tracker: ScopeTracker
    _index: EntityIndex | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def of(cls, document: DocumentSnapshot) -> DocumentAnalysis:
        return cls(document=document, tracker=ScopeTracker(document))

    @property
    def index(self) -> EntityIndex:
        with self._lock:
            if self._index is None:
                self._index = EntityIndex.build(self.document, self.tracker.scan())
            return self._index


@dataclass
class _DocumentState:
    document: DocumentSnapshot
    analysis: DocumentAnalysis | None = None


class DocumentStore:
    """Open documents keyed by URI.  Thread-safe via ``threading.Lock``.

    Revisions come from one store-wide counter, so they strictly increase per
    document and never repeat after a close and reopen.  Analyses are cached
    for the current revision only and evicted when superseded or closed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, _DocumentState] = {}
        self._revisions = itertools.count(1)

    def open(self, uri: str, text: str) -> DocumentSnapshot:
        """Open (or reopen) *uri* with *text*."""
        with self._lock:
            document = DocumentSnapshot.from_text(uri, text, next(self._revisions))
            self._documents[uri] = _DocumentState(document=document)
            return document

    def update(self, uri: str, text: str) -> DocumentSnapshot:
        """Replace the text of an open document, producing a new revision."""
        with self._lock:
            if uri not in self._documents:
                raise DocumentNotFoundError(f"Document '{uri}' is not open")
            document = DocumentSnapshot.from_text(uri, text, next(self._revisions))
            self._documents[uri] = _DocumentState(document=document)
            return document

    def close(self, uri: str) -> None:
        with self._lock:
            if uri not in self._documents:
                raise DocumentNotFoundError(f"Document '{uri}' is not open")
            del self._documents[uri]

    def get(self, uri: str) -> DocumentSnapshot:
        """Current snapshot of *uri*."""
        with self._lock:
            state = self._documents.get(uri)
            if state is None:
                raise DocumentNotFoundError(f"Document '{uri}' is not open")
            return state.document

    def current_revision(self, uri: str) -> int | None:
        """Current revision of *uri*, or ``None`` when it is not open."""
        with self._lock:
            state = self._documents.get(uri)
            return state.document.revision if state is not None else None

    def analysis(self, uri: str) -> DocumentAnalysis:
        """Analysis of the current revision, created on first request."""
        with self._lock:
            state = self._documents.get(uri)
            if state is None:
                raise DocumentNotFoundError(f"Document '{uri}' is not open")
            if state.analysis is None:
                state.analysis = DocumentAnalysis.of(state.document)
            return state.analysis

    def list_uris(self) -> list[str]:
        with self._lock:
            return sorted(self._documents)

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._documents
