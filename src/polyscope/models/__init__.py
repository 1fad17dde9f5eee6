"""Pydantic and dataclass domain models for Polyscope."""

from polyscope.models.context import EditorContext
from polyscope.models.diagnostics import Anomaly, Diagnostic, DiagnosticSet, Severity
from polyscope.models.document import DocumentKind, DocumentSnapshot, Position, Range
from polyscope.models.scope import EntityKind, EntityReference, LineSpan, ScopeFrame, ScopeKind
from polyscope.models.snapshot import NodeKind, SnapshotNode

__all__ = [
    "Anomaly",
    "Diagnostic",
    "DiagnosticSet",
    "DocumentKind",
    "DocumentSnapshot",
    "EditorContext",
    "EntityKind",
    "EntityReference",
    "LineSpan",
    "NodeKind",
    "Position",
    "Range",
    "ScopeFrame",
    "ScopeKind",
    "Severity",
    "SnapshotNode",
]
