"""Document-scoped endpoints: lifecycle, validation and context queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from polyscope.api.deps import get_coordinator
from polyscope.api.schemas import (
    ContextResponse,
    DiagnosticsResponse,
    DocumentOpenRequest,
    DocumentRef,
    DocumentResponse,
    PositionRequest,
    SuggestionItem,
    SuggestionsResponse,
)
from polyscope.models.document import DocumentSnapshot
from polyscope.service.coordinator import ValidationCoordinator
from polyscope.service.documents import DocumentNotFoundError

router = APIRouter()


# -- helpers -----------------------------------------------------------------


def _not_found(uri: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Document '{uri}' is not open")


def _document_response(document: DocumentSnapshot) -> DocumentResponse:
    return DocumentResponse(
        uri=document.uri, revision=document.revision, kind=document.kind.value
    )


# -- lifecycle ---------------------------------------------------------------


@router.post("", response_model=DocumentResponse, status_code=201)
async def open_document(
    body: DocumentOpenRequest,
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> DocumentResponse:
    """Open a document (or reopen it with new text) and schedule validation."""
    document = await coordinator.did_open(body.uri, body.text)
    return _document_response(document)


@router.put("", response_model=DocumentResponse)
async def change_document(
    body: DocumentOpenRequest,
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> DocumentResponse:
    """Replace the text of an open document."""
    try:
        document = await coordinator.did_change(body.uri, body.text)
    except DocumentNotFoundError:
        raise _not_found(body.uri) from None
    return _document_response(document)


@router.delete("", status_code=204)
async def close_document(
    uri: str = Query(description="URI of the document to close"),
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> None:
    """Close a document and drop its diagnostics."""
    try:
        await coordinator.did_close(uri)
    except DocumentNotFoundError:
        raise _not_found(uri) from None


# -- validation --------------------------------------------------------------


@router.post("/validate", response_model=DiagnosticsResponse)
async def validate_document(
    body: DocumentRef,
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> DiagnosticsResponse:
    """Validate the current revision immediately and return its diagnostics."""
    try:
        result = await coordinator.validate(body.uri)
        if result is None:
            # Superseded while the oracle ran; report what is published now.
            result = coordinator.diagnostics(body.uri)
    except DocumentNotFoundError:
        raise _not_found(body.uri) from None
    return DiagnosticsResponse.from_set(body.uri, result)


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def get_diagnostics(
    uri: str = Query(description="URI of an open document"),
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> DiagnosticsResponse:
    """Return the last published diagnostics without validating."""
    try:
        return DiagnosticsResponse.from_set(uri, coordinator.diagnostics(uri))
    except DocumentNotFoundError:
        raise _not_found(uri) from None


# -- context queries ---------------------------------------------------------


@router.post("/context", response_model=ContextResponse)
async def get_context(
    body: PositionRequest,
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> ContextResponse:
    """Entity and section enclosing a cursor position."""
    try:
        context = coordinator.context_at(body.uri, body.position)
    except DocumentNotFoundError:
        raise _not_found(body.uri) from None
    return ContextResponse(**context.model_dump())


@router.post("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    body: PositionRequest,
    coordinator: ValidationCoordinator = Depends(get_coordinator),  # noqa: B008
) -> SuggestionsResponse:
    """Keywords valid at a cursor position."""
    try:
        suggestions = coordinator.suggestions(body.uri, body.position)
    except DocumentNotFoundError:
        raise _not_found(body.uri) from None
    return SuggestionsResponse(suggestions=[SuggestionItem.of(s) for s in suggestions])
