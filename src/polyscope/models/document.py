"""Immutable document snapshots and source positions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from urllib.parse import unquote, urlparse

from pydantic import BaseModel

WORKSPACE_FILE_NAMES = ("workspace.poly", ".workspace")
BLOCK_FILE_NAME = "block.poly"


class DocumentKind(StrEnum):
    WORKSPACE = "workspace"
    BLOCK = "block"
    OTHER = "other"


class Position(BaseModel):
    """A 0-based line/character position."""

    line: int
    character: int

    model_config = {"frozen": True}


class Range(BaseModel):
    """A start/end position pair in a document."""

    start: Position
    end: Position

    model_config = {"frozen": True}

    @classmethod
    def zero(cls) -> Range:
        """The document-start range used when nothing more precise is known."""
        origin = Position(line=0, character=0)
        return cls(start=origin, end=origin)

    @classmethod
    def span(cls, line: int, start: int, end: int) -> Range:
        return cls(
            start=Position(line=line, character=start),
            end=Position(line=line, character=end),
        )


@dataclass(frozen=True)
class DocumentSnapshot:
    """One revision of a document's text.  Never mutated; rebuilt per edit."""

    uri: str
    revision: int
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, uri: str, text: str, revision: int) -> DocumentSnapshot:
        lines = tuple(line.rstrip("\r") for line in text.split("\n"))
        return cls(uri=uri, revision=revision, lines=lines)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def line(self, number: int) -> str:
        """Return line *number*, or an empty string when out of range."""
        if 0 <= number < len(self.lines):
            return self.lines[number]
        return ""

    def line_range(self, number: int) -> Range:
        """Range covering the non-whitespace content of line *number*."""
        if not 0 <= number < len(self.lines):
            return Range.zero()
        text = self.lines[number]
        stripped = text.strip()
        if not stripped:
            return Range.span(number, 0, 0)
        start = len(text) - len(text.lstrip())
        return Range.span(number, start, start + len(stripped))

    @property
    def path(self) -> Path | None:
        """Filesystem path of the document, if its URI names one."""
        parsed = urlparse(self.uri)
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        if parsed.scheme == "":
            return Path(self.uri)
        return None

    @property
    def file_name(self) -> str:
        path = self.path
        if path is not None:
            return path.name
        return self.uri.rstrip("/").rsplit("/", 1)[-1]

    @property
    def kind(self) -> DocumentKind:
        """Document kind derived from the file name alone."""
        name = self.file_name
        if name in WORKSPACE_FILE_NAMES:
            return DocumentKind.WORKSPACE
        if name == BLOCK_FILE_NAME:
            return DocumentKind.BLOCK
        return DocumentKind.OTHER
