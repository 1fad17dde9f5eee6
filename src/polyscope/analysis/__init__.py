"""Reconciliation, publishing and context queries over scanned documents."""

from polyscope.analysis.context import context_at
from polyscope.analysis.publisher import DiagnosticPublisher, DiagnosticSink, InMemoryDiagnosticSink
from polyscope.analysis.reconciler import SnapshotReconciler, document_kind
from polyscope.analysis.vocabulary import Suggestion, suggestions_for

__all__ = [
    "DiagnosticPublisher",
    "DiagnosticSink",
    "InMemoryDiagnosticSink",
    "SnapshotReconciler",
    "Suggestion",
    "context_at",
    "document_kind",
    "suggestions_for",
]
