"""Unit tests for context queries."""

from __future__ import annotations

from polyscope.analysis.context import context_at
from polyscope.models.document import Position
from polyscope.models.scope import EntityKind
from tests.conftest import (
    BLOCK_URI,
    SAMPLE_BLOCK,
    SAMPLE_WORKSPACE,
    WORKSPACE_WITH_ACTIONS,
    make_document,
)


def _at(text: str, line: int, character: int = 0, uri: str | None = None):
    document = make_document(text) if uri is None else make_document(text, uri)
    return context_at(document, Position(line=line, character=character))


class TestContextAt:
    def test_root(self) -> None:
        context = _at(SAMPLE_WORKSPACE, 0)
        assert context.entity_identity is None
        assert context.section_path == []
        assert not context.is_inside_entity_body

    def test_inside_block_body(self) -> None:
        context = _at(SAMPLE_WORKSPACE, 5, 6)
        assert context.entity_identity == "alpha"
        assert context.entity_kind == EntityKind.BLOCK
        assert context.section_path == ["blocks"]
        assert context.is_inside_entity_body

    def test_on_entity_name_line(self) -> None:
        context = _at(SAMPLE_WORKSPACE, 6, 10)
        assert context.entity_identity == "beta"
        assert not context.is_inside_entity_body

    def test_on_section_key_line(self) -> None:
        context = _at(SAMPLE_WORKSPACE, 2, 3)
        assert context.entity_identity is None
        assert context.section_path == []

    def test_nested_action(self) -> None:
        context = _at(WORKSPACE_WITH_ACTIONS, 11, 12)
        assert context.entity_identity == "alpha.install"
        assert context.entity_kind == EntityKind.ACTION
        assert context.section_path == ["blocks", "actions", "script"]
        assert context.innermost_section == "script"

    def test_section_outside_blocks(self) -> None:
        context = _at(WORKSPACE_WITH_ACTIONS, 4, 6)
        assert context.entity_identity is None
        assert context.section_path == ["config", "image"]

    def test_block_document_action(self) -> None:
        context = _at(SAMPLE_BLOCK, 9, 4, BLOCK_URI)
        assert context.entity_identity == "uninstall"
        assert context.entity_kind == EntityKind.ACTION

    def test_inside_block_scalar(self) -> None:
        context = _at(SAMPLE_BLOCK, 6, 8, BLOCK_URI)
        assert context.entity_identity == "install"
        assert context.is_inside_entity_body


class TestBlankLineContext:
    def test_cursor_column_selects_depth(self) -> None:
        # Line 12 is the empty line after the last block.
        assert _at(SAMPLE_WORKSPACE, 12, 4).entity_identity == "gamma"
        at_sequence = _at(SAMPLE_WORKSPACE, 12, 2)
        assert at_sequence.entity_identity is None
        assert at_sequence.section_path == ["blocks"]
        at_root = _at(SAMPLE_WORKSPACE, 12, 0)
        assert at_root.entity_identity is None
        assert at_root.section_path == []

    def test_blank_line_inside_body(self) -> None:
        text = "blocks:\n  - name: alpha\n\n    kind: generic\n"
        context = _at(text, 2, 4)
        assert context.entity_identity == "alpha"
        assert context.is_inside_entity_body

    def test_position_past_end(self) -> None:
        context = _at(SAMPLE_WORKSPACE, 99, 4)
        assert context.entity_identity == "gamma"
