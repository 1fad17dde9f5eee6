"""Result of a structural context query."""

from __future__ import annotations

from pydantic import BaseModel

from polyscope.models.scope import EntityKind


class EditorContext(BaseModel):
    """Which entity and section a cursor position is inside."""

    entity_identity: str | None = None
    entity_kind: EntityKind | None = None
    section_path: list[str] = []
    is_inside_entity_body: bool = False

    @property
    def innermost_section(self) -> str | None:
        return self.section_path[-1] if self.section_path else None
