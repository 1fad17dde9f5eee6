"""API request/response Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from polyscope.analysis.vocabulary import Suggestion
from polyscope.models.context import EditorContext
from polyscope.models.diagnostics import Diagnostic, DiagnosticSet
from polyscope.models.document import Position


class DocumentOpenRequest(BaseModel):
    """Request body for POST /documents and PUT /documents."""

    uri: str = Field(description="Document URI, e.g. file:///ws/workspace.poly")
    text: str = Field(description="Full document text")


class DocumentResponse(BaseModel):
    """The revision assigned to an opened or changed document."""

    uri: str
    revision: int
    kind: str


class DocumentRef(BaseModel):
    """Request body naming an open document."""

    uri: str


class PositionRequest(BaseModel):
    """Request body for context and suggestion queries."""

    uri: str
    position: Position


class DiagnosticsResponse(BaseModel):
    """Published diagnostics of one document revision."""

    uri: str
    revision: int | None = None
    error_count: int = 0
    warning_count: int = 0
    diagnostics: list[Diagnostic] = []

    @classmethod
    def from_set(cls, uri: str, diagnostic_set: DiagnosticSet | None) -> DiagnosticsResponse:
        if diagnostic_set is None:
            return cls(uri=uri)
        return cls(
            uri=uri,
            revision=diagnostic_set.revision,
            error_count=len(diagnostic_set.errors),
            warning_count=len(diagnostic_set.warnings),
            diagnostics=list(diagnostic_set.diagnostics),
        )


class ContextResponse(EditorContext):
    """Response body for POST /documents/context."""


class SuggestionItem(BaseModel):
    label: str
    detail: str
    insert_text: str
    is_value: bool = False

    @classmethod
    def of(cls, suggestion: Suggestion) -> SuggestionItem:
        return cls(
            label=suggestion.label,
            detail=suggestion.detail,
            insert_text=suggestion.insert_text,
            is_value=suggestion.is_value,
        )


class SuggestionsResponse(BaseModel):
    """Response body for POST /documents/suggestions."""

    suggestions: list[SuggestionItem] = []


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""
