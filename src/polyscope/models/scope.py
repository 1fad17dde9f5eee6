"""Scope frames and entity references produced by the indentation scanner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from polyscope.models.document import Range


class ScopeKind(StrEnum):
    ROOT = "root"
    BLOCK_SEQUENCE_ITEM = "block_sequence_item"
    SECTION = "section"
    OTHER = "other"


class EntityKind(StrEnum):
    BLOCK = "block"
    ACTION = "action"
    FIELD = "field"


@dataclass(frozen=True)
class ScopeFrame:
    """An open indentation-delimited region.

    ``field_column`` and ``section`` are only set on sequence items: the
    column where the item's own keys start and the key of the sequence the
    item belongs to.  An item without a ``name`` is an ``OTHER`` frame until
    a ``name`` key appears at that column.
    """

    kind: ScopeKind
    name: str | None
    start_line: int
    indent: int
    field_column: int | None = None
    section: str | None = None


@dataclass(frozen=True)
class LineSpan:
    """Inclusive first/last line of an entity body."""

    start: int
    end: int

    def __contains__(self, line: object) -> bool:
        return isinstance(line, int) and self.start <= line <= self.end


@dataclass(frozen=True)
class EntityReference:
    """Where an entity or field is defined in the source text."""

    entity_kind: EntityKind
    identity: str
    name: str
    range: Range
    span: LineSpan
    value: str | None = None
    parent: str | None = None

    @property
    def line(self) -> int:
        return self.range.start.line
