"""Indentation-based scope tracking over raw, possibly invalid, document text.

The scanner never builds a syntax tree.  It walks the lines once, keeping a
stack of open frames: a frame closes as soon as a non-blank line appears at
or left of its indent column.  The result for every line is computed in one
pass and cached on the tracker, so repeated queries against the same
revision are O(1).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from polyscope.models.document import DocumentSnapshot
from polyscope.models.scope import ScopeFrame, ScopeKind

SECTION_KEYWORDS = frozenset(
    {
        "actions",
        "artifacts",
        "blocks",
        "config",
        "dependencies",
        "events",
        "extraenv",
        "extramounts",
        "globals",
        "image",
        "inventory",
        "kubeconfig",
        "labels",
        "registry",
        "sync",
        "workdir",
        "workflows",
    }
)

IDENTITY_KEY = "name"

ROOT_FRAME = ScopeFrame(kind=ScopeKind.ROOT, name=None, start_line=0, indent=-1)

_KEY_RE = re.compile(r"^(?P<key>[A-Za-z_.$][\w.$/-]*)\s*:(?:\s+(?P<value>.*))?$")
_BLOCK_SCALAR_RE = re.compile(r"^[|>][+-]?\d*(?:\s+#.*)?$")


@dataclass(frozen=True)
class LineEntry:
    """A classified content line.

    ``key_column`` is the column where ``key`` starts; for sequence items it
    is right of the ``-`` marker.
    """

    number: int
    indent: int
    text: str
    is_item: bool
    key: str | None = None
    key_column: int = 0
    value: str | None = None

    @property
    def opens_block_scalar(self) -> bool:
        return self.value is not None and bool(_BLOCK_SCALAR_RE.match(self.value))


@dataclass(frozen=True)
class ScopeScan:
    """Output of one scan: per-line stacks, classified lines and frame ends."""

    stacks: tuple[tuple[ScopeFrame, ...], ...]
    entries: tuple[LineEntry | None, ...]
    frame_ends: dict[int, int]

    def stack_at(self, line: int) -> tuple[ScopeFrame, ...]:
        if not self.stacks:
            return (ROOT_FRAME,)
        if line < 0:
            return (ROOT_FRAME,)
        return self.stacks[min(line, len(self.stacks) - 1)]

    def end_of(self, frame: ScopeFrame) -> int:
        """Last content line of *frame* (its own line if it has no body)."""
        return self.frame_ends.get(frame.start_line, frame.start_line)


def measure_indent(text: str) -> int:
    """Leading whitespace width; tabs count as a single character."""
    return len(text) - len(text.lstrip(" \t"))


def clean_scalar(value: str | None) -> str | None:
    """Strip quotes and trailing comments from an inline scalar value."""
    if value is None:
        return None
    value = value.strip()
    if value[:1] in ("'", '"'):
        quote = value[0]
        closing = value.find(quote, 1)
        if closing != -1:
            return value[1:closing]
        return value[1:] or None
    if value.startswith("#"):
        return None
    comment = value.find(" #")
    if comment != -1:
        value = value[:comment].rstrip()
    return value or None


def classify(number: int, text: str) -> LineEntry | None:
    """Classify a raw line.  Blank and comment-only lines yield ``None``."""
    stripped = text.strip()
    if not stripped or stripped.startswith("#"):
        return None
    indent = measure_indent(text)
    body = stripped
    column = indent
    is_item = False
    if body == "-" or body.startswith(("- ", "-\t")):
        is_item = True
        rest = body[1:]
        body = rest.lstrip(" \t")
        column = indent + 1 + (len(rest) - len(body))
    match = _KEY_RE.match(body)
    if match is None:
        return LineEntry(number=number, indent=indent, text=stripped, is_item=is_item)
    value = match.group("value")
    if value is not None:
        value = value.strip() or None
    return LineEntry(
        number=number,
        indent=indent,
        text=stripped,
        is_item=is_item,
        key=match.group("key"),
        key_column=column,
        value=value,
    )


def _frame_for(entry: LineEntry, section: str | None) -> ScopeFrame | None:
    """The frame a line opens, if any."""
    if entry.is_item:
        if entry.key == IDENTITY_KEY:
            return ScopeFrame(
                kind=ScopeKind.BLOCK_SEQUENCE_ITEM,
                name=clean_scalar(entry.value),
                start_line=entry.number,
                indent=entry.indent,
                field_column=entry.key_column,
                section=section,
            )
        if entry.key is not None:
            return ScopeFrame(
                kind=ScopeKind.OTHER,
                name=None,
                start_line=entry.number,
                indent=entry.indent,
                field_column=entry.key_column,
                section=section,
            )
        return None
    if entry.key is None or entry.value is not None:
        return None
    kind = ScopeKind.SECTION if entry.key in SECTION_KEYWORDS else ScopeKind.OTHER
    return ScopeFrame(kind=kind, name=entry.key, start_line=entry.number, indent=entry.indent)


def _is_named_key(frame: ScopeFrame) -> bool:
    return frame.kind in (ScopeKind.SECTION, ScopeKind.OTHER) and frame.name is not None


def _names_item(frame: ScopeFrame, entry: LineEntry) -> bool:
    """Whether *entry* is the `name` key of an item that did not start with it."""
    return (
        frame.kind == ScopeKind.OTHER
        and frame.name is None
        and frame.field_column == entry.indent
        and not entry.is_item
        and entry.key == IDENTITY_KEY
        and clean_scalar(entry.value) is not None
    )


def scan(document: DocumentSnapshot) -> ScopeScan:
    """Scan the whole document once."""
    stack: list[ScopeFrame] = [ROOT_FRAME]
    stacks: list[tuple[ScopeFrame, ...]] = []
    entries: list[LineEntry | None] = []
    frame_ends: dict[int, int] = {}
    last_content = 0
    block_scalar_indent: int | None = None
    # Key of a sequence written at the same indent as its key (compact style).
    sequence_owner: dict[int, str] = {}

    for number, text in enumerate(document.lines):
        entry = classify(number, text)
        if block_scalar_indent is not None:
            if not text.strip():
                entry = None
            elif measure_indent(text) > block_scalar_indent:
                # Block scalar content never opens or closes frames.
                last_content = number
                stacks.append(tuple(stack))
                entries.append(None)
                continue
            else:
                block_scalar_indent = None

        if entry is None:
            stacks.append(tuple(stack))
            entries.append(None)
            continue

        while len(stack) > 1 and stack[-1].indent >= entry.indent:
            closed = stack.pop()
            frame_ends[closed.start_line] = last_content
            if entry.is_item and closed.indent == entry.indent and _is_named_key(closed):
                sequence_owner[entry.indent] = closed.name  # type: ignore[assignment]

        section: str | None = None
        if entry.is_item:
            top = stack[-1]
            section = top.name if _is_named_key(top) else sequence_owner.get(entry.indent)
        else:
            for indent in [i for i in sequence_owner if i >= entry.indent]:
                del sequence_owner[indent]

        top = stack[-1]
        if _names_item(top, entry):
            # `- from: x` followed by `name: y`: the item is an entity after all.
            named = replace(
                top, kind=ScopeKind.BLOCK_SEQUENCE_ITEM, name=clean_scalar(entry.value)
            )
            stack[-1] = named
            for earlier in range(top.start_line, number):
                stacks[earlier] = tuple(named if f is top else f for f in stacks[earlier])

        frame = _frame_for(entry, section)
        if frame is not None:
            stack.append(frame)
        if entry.opens_block_scalar:
            block_scalar_indent = entry.indent

        last_content = number
        stacks.append(tuple(stack))
        entries.append(entry)

    while len(stack) > 1:
        frame_ends[stack.pop().start_line] = last_content

    return ScopeScan(stacks=tuple(stacks), entries=tuple(entries), frame_ends=frame_ends)


class ScopeTracker:
    """Answers ``scopes_at`` queries for one document revision.

    The scan runs lazily on first use and is reused for every later query.
    """

    def __init__(self, document: DocumentSnapshot) -> None:
        self._document = document
        self._scan: ScopeScan | None = None

    @property
    def document(self) -> DocumentSnapshot:
        return self._document

    def scan(self) -> ScopeScan:
        if self._scan is None:
            self._scan = scan(self._document)
        return self._scan

    def scopes_at(self, line: int) -> list[ScopeFrame]:
        """Open frames after reading *line*, innermost last."""
        return list(self.scan().stack_at(line))


def scopes_at(document: DocumentSnapshot, line: int) -> list[ScopeFrame]:
    """Scope stack at *line* of *document*, innermost last."""
    return ScopeTracker(document).scopes_at(line)
