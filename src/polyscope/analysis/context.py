"""Context queries for completion and hover callers.

Answers "which entity and section is this position inside" from the scope
stack alone.  Never touches the CLI or the filesystem.
"""

from __future__ import annotations

from polyscope.models.context import EditorContext
from polyscope.models.document import DocumentSnapshot, Position
from polyscope.models.scope import EntityKind, ScopeFrame, ScopeKind
from polyscope.parser.index import ACTION_SECTIONS
from polyscope.parser.scope import ScopeTracker


def context_at(
    document: DocumentSnapshot, position: Position, tracker: ScopeTracker | None = None
) -> EditorContext:
    """Structural context at *position*.

    On a blank line the cursor column stands in for the line's indent, so a
    cursor placed left of a section's children is outside that section.
    """
    if tracker is None:
        tracker = ScopeTracker(document)
    line = position.line
    frames = tracker.scopes_at(line)
    if not document.line(line).strip() or line >= len(document.lines):
        frames = [f for f in frames if f.kind == ScopeKind.ROOT or f.indent < position.character]

    entity_frames = [f for f in frames if f.kind == ScopeKind.BLOCK_SEQUENCE_ITEM]
    if not entity_frames:
        return EditorContext(section_path=_section_path(frames, line))

    innermost = entity_frames[-1]
    names = [f.name for f in entity_frames]
    identity = ".".join(n for n in names if n) if all(names) else innermost.name
    kind = EntityKind.ACTION if innermost.section in ACTION_SECTIONS else EntityKind.BLOCK
    return EditorContext(
        entity_identity=identity,
        entity_kind=kind if innermost.name else None,
        section_path=_section_path(frames, line),
        is_inside_entity_body=innermost.start_line < line,
    )


def _section_path(frames: list[ScopeFrame], line: int) -> list[str]:
    """Names of the keyed sections enclosing *line*."""
    return [
        f.name
        for f in frames
        if f.kind in (ScopeKind.SECTION, ScopeKind.OTHER) and f.name and f.start_line < line
    ]
