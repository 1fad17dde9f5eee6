"""Unit tests for keyword suggestions."""

from __future__ import annotations

from polyscope.analysis.context import context_at
from polyscope.analysis.vocabulary import (
    ACTION_FIELDS,
    BLOCK_FIELDS,
    BLOCK_KIND_VALUES,
    WORKSPACE_CONFIG_FIELDS,
    WORKSPACE_FIELDS,
    Suggestion,
    suggestions_for,
)
from polyscope.models.context import EditorContext
from polyscope.models.document import DocumentKind, Position
from polyscope.models.scope import EntityKind
from tests.conftest import BLOCK_URI, SAMPLE_BLOCK, WORKSPACE_WITH_ACTIONS, make_document


def _labels(suggestions: list[Suggestion]) -> list[str]:
    return [s.label for s in suggestions]


def _suggest(text: str, line: int, character: int, uri: str | None = None) -> list[Suggestion]:
    document = make_document(text) if uri is None else make_document(text, uri)
    context = context_at(document, Position(line=line, character=character))
    kind = DocumentKind.BLOCK if uri == BLOCK_URI else DocumentKind.WORKSPACE
    return suggestions_for(context, kind, document.line(line)[:character])


class TestSuggestion:
    def test_insert_text(self) -> None:
        assert Suggestion("name", "Name").insert_text == "name: "
        assert Suggestion("db", "Kind", is_value=True).insert_text == "db"

    def test_kind_values(self) -> None:
        assert _labels(list(BLOCK_KIND_VALUES)) == [
            "generic", "k8sapp", "k8scluster", "db", "kv", "mq", "app",
        ]


class TestSuggestionsFor:
    def test_workspace_root(self) -> None:
        result = suggestions_for(EditorContext(), DocumentKind.WORKSPACE)
        assert result == list(WORKSPACE_FIELDS)

    def test_after_kind_key(self) -> None:
        context = EditorContext(entity_identity="alpha", is_inside_entity_body=True)
        result = suggestions_for(context, DocumentKind.WORKSPACE, "    kind: ")
        assert result == list(BLOCK_KIND_VALUES)

    def test_inside_block_body(self) -> None:
        text = WORKSPACE_WITH_ACTIONS + "    \n"
        assert _suggest(text, 15, 4) == list(BLOCK_FIELDS)

    def test_inside_action_body(self) -> None:
        assert _suggest(WORKSPACE_WITH_ACTIONS, 10, 8) == list(ACTION_FIELDS)

    def test_blocks_section_between_items(self) -> None:
        context = EditorContext(section_path=["blocks"])
        assert suggestions_for(context, DocumentKind.WORKSPACE) == list(BLOCK_FIELDS)

    def test_workspace_config(self) -> None:
        assert _suggest(WORKSPACE_WITH_ACTIONS, 3, 2) == list(WORKSPACE_CONFIG_FIELDS)

    def test_block_config_in_workspace_is_free_form(self) -> None:
        context = EditorContext(
            entity_identity="alpha",
            entity_kind=EntityKind.BLOCK,
            section_path=["blocks", "config"],
            is_inside_entity_body=True,
        )
        assert suggestions_for(context, DocumentKind.WORKSPACE) == []

    def test_block_document_root(self) -> None:
        assert _suggest(SAMPLE_BLOCK, 1, 0, BLOCK_URI) == list(BLOCK_FIELDS)

    def test_block_document_nested_section(self) -> None:
        context = EditorContext(section_path=["config"])
        assert suggestions_for(context, DocumentKind.BLOCK) == []
