"""FastMCP server exposing Polyscope's validation and context queries as MCP tools.

Run via::

    polyscope-mcp                       # reads .env (default: stdio)
    MCP_TRANSPORT=http polyscope-mcp    # streamable HTTP on port 9000
    MCP_TRANSPORT=sse  polyscope-mcp    # legacy SSE on port 9000

Documents are identified by URI.  Tools that accept ``text`` open the
document (or replace its text) before answering; without ``text`` the
document must already be open.  Settings are loaded from environment
variables and ``.env`` file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from polyscope import __version__
from polyscope.analysis.reconciler import ACTION_DIRECTIVES, BLOCK_KINDS
from polyscope.analysis.vocabulary import (
    ACTION_FIELDS,
    BLOCK_FIELDS,
    WORKSPACE_CONFIG_FIELDS,
    WORKSPACE_FIELDS,
    Suggestion,
)
from polyscope.models.diagnostics import DiagnosticSet
from polyscope.models.document import Position
from polyscope.service import oracle as oracle_module
from polyscope.service.coordinator import ValidationCoordinator
from polyscope.service.documents import DocumentNotFoundError
from polyscope.service.oracle import OracleClient
from polyscope.settings import Settings

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("polyscope.mcp")

mcp = FastMCP("Polyscope")
_coordinator: ValidationCoordinator | None = None
_oracle: OracleClient | None = None


def _resolve_coordinator() -> ValidationCoordinator:
    if _coordinator is None:
        raise ToolError("Validation coordinator not initialised")
    return _coordinator


async def _sync_document(uri: str, text: str | None) -> ValidationCoordinator:
    """Open or update *uri* when *text* is given; check it is open otherwise."""
    coordinator = _resolve_coordinator()
    if text is not None:
        if uri in coordinator.store:
            await coordinator.did_change(uri, text)
        else:
            await coordinator.did_open(uri, text)
    elif uri not in coordinator.store:
        raise ToolError(f"Document '{uri}' is not open; pass its text")
    return coordinator


def _format_suggestions(suggestions: list[Suggestion]) -> str:
    return "\n".join(f"  {s.label}  ({s.detail})" for s in suggestions)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


def _field_reference() -> str:
    lines = ["# Polycrate file reference", "", "## workspace.poly"]
    lines.append(_format_suggestions(list(WORKSPACE_FIELDS)))
    lines += ["", "## workspace config"]
    lines.append(_format_suggestions(list(WORKSPACE_CONFIG_FIELDS)))
    lines += ["", "## block.poly / blocks entries"]
    lines.append(_format_suggestions(list(BLOCK_FIELDS)))
    lines += ["", "## actions entries"]
    lines.append(_format_suggestions(list(ACTION_FIELDS)))
    lines += [
        "",
        f"Valid block kinds: {', '.join(BLOCK_KINDS)}",
        f"Every action needs one of: {', '.join(ACTION_DIRECTIVES)}",
    ]
    return "\n".join(lines)


@mcp.resource("polycrate://reference")
def polycrate_reference() -> str:
    """Fields allowed in workspace and block files, block kinds and action directives."""
    return _field_reference()


# ---------------------------------------------------------------------------
# Document tools
# ---------------------------------------------------------------------------


def _format_diagnostics(result: DiagnosticSet) -> str:
    if not result.diagnostics:
        return f"No problems found (revision {result.revision})."
    lines = [
        f"{len(result.errors)} error(s), {len(result.warnings)} warning(s) "
        f"(revision {result.revision}):"
    ]
    for d in result.diagnostics:
        start = d.range.start
        lines.append(
            f"  {start.line + 1}:{start.character + 1}  {d.severity.value}  "
            f"[{d.code}] {d.message}"
        )
    return "\n".join(lines)


@mcp.tool
async def validate_document(uri: str, text: str | None = None) -> str:
    """Validate a workspace.poly or block.poly document.

    Runs the ``polycrate`` CLI for the enclosing workspace when available and
    falls back to local identity-field checks when it is not.  Line and
    column numbers in the result are 1-based.

    Args:
        uri: Document URI or absolute path, e.g. ``file:///ws/workspace.poly``.
        text: Full document text.  Required unless the document is already open.
    """
    coordinator = await _sync_document(uri, text)
    logger.info("validate_document called for %s", uri)
    try:
        result = await coordinator.validate(uri)
        if result is None:
            result = coordinator.diagnostics(uri)
    except DocumentNotFoundError as exc:
        raise ToolError(str(exc)) from exc
    if result is None:
        raise ToolError(f"Document '{uri}' changed during validation; try again")
    return _format_diagnostics(result)


@mcp.tool
async def context_at(uri: str, line: int, character: int, text: str | None = None) -> str:
    """Describe the entity and section enclosing a cursor position.

    Args:
        uri: Document URI or absolute path.
        line: 0-based line number.
        character: 0-based column.
        text: Full document text.  Required unless the document is already open.
    """
    coordinator = await _sync_document(uri, text)
    try:
        context = coordinator.context_at(uri, Position(line=line, character=character))
    except DocumentNotFoundError as exc:
        raise ToolError(str(exc)) from exc
    lines = [
        f"entity: {context.entity_identity or '-'}",
        f"kind: {context.entity_kind.value if context.entity_kind else '-'}",
        f"sections: {' > '.join(context.section_path) or '-'}",
        f"inside entity body: {'yes' if context.is_inside_entity_body else 'no'}",
    ]
    return "\n".join(lines)


@mcp.tool
async def suggest_keywords(uri: str, line: int, character: int, text: str | None = None) -> str:
    """List the keywords valid at a cursor position.

    Args:
        uri: Document URI or absolute path.
        line: 0-based line number.
        character: 0-based column.
        text: Full document text.  Required unless the document is already open.
    """
    coordinator = await _sync_document(uri, text)
    try:
        suggestions = coordinator.suggestions(uri, Position(line=line, character=character))
    except DocumentNotFoundError as exc:
        raise ToolError(str(exc)) from exc
    if not suggestions:
        return "No keyword suggestions at this position."
    return "Suggestions:\n" + _format_suggestions(suggestions)


# ---------------------------------------------------------------------------
# Workspace tools
# ---------------------------------------------------------------------------


@mcp.tool
def find_workspace_root(path: str) -> str:
    """Find the Polycrate workspace directory containing *path*.

    Args:
        path: A file or directory inside the workspace.
    """
    root = oracle_module.find_workspace_root(Path(path))
    if root is None:
        raise ToolError(f"No workspace found above '{path}'")
    return str(root)


@mcp.tool
async def inspect_block(name: str, path: str) -> str:
    """Show the CLI-resolved definition of one block.

    Args:
        name: Block name as listed in the workspace.
        path: A file or directory inside the workspace.
    """
    if _oracle is None:
        raise ToolError("Validation oracle not initialised")
    root = oracle_module.find_workspace_root(Path(path))
    if root is None:
        raise ToolError(f"No workspace found above '{path}'")
    block = await _oracle.fetch_snapshot(root, entity=name)
    if block is None:
        raise ToolError(f"The polycrate CLI could not inspect block '{name}'")

    lines = [f"Block {block.get('name').text() or name}:"]
    for field in ("kind", "from", "version", "description"):
        value = block.get(field).text()
        if value is not None:
            lines.append(f"  {field}: {value}")
    actions = [a.get("name").text() or "unnamed" for a in block.get("actions").items()]
    if actions:
        lines.append(f"  actions: {', '.join(actions)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "Polyscope MCP Server v%s starting (transport=%s, cli=%s)",
        __version__,
        settings.mcp_transport,
        settings.cli_path,
    )

    global _coordinator, _oracle  # noqa: PLW0603
    _oracle = OracleClient(
        cli_path=settings.cli_path,
        timeout_seconds=settings.oracle_timeout_seconds,
    )
    _coordinator = ValidationCoordinator(
        oracle=_oracle,
        debounce_seconds=settings.validation_debounce_seconds,
    )

    try:
        if settings.mcp_transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(
                transport=settings.mcp_transport,
                host=settings.mcp_server_host,
                port=settings.mcp_server_port,
                log_level=settings.log_level.lower(),
            )
    finally:
        _coordinator = None
        _oracle = None


if __name__ == "__main__":
    main()
