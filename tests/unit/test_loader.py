"""Unit tests for YAML loading, safety limits and syntax checks."""

from __future__ import annotations

import pytest
from ruamel.yaml.error import YAMLError

from polyscope.models.snapshot import NodeKind
from polyscope.parser import loader as loader_module
from polyscope.parser.loader import YamlLoader, YAMLSafetyError


@pytest.fixture
def loader() -> YamlLoader:
    return YamlLoader()


class TestLoadSnapshot:
    def test_mapping(self, loader: YamlLoader) -> None:
        node = loader.load_snapshot("workspace:\n  name: ws\n  blocks:\n    - name: a\n")
        assert node.kind == NodeKind.MAPPING
        blocks = node.get("workspace").get("blocks").items()
        assert [b.get("name").text() for b in blocks] == ["a"]

    def test_quoted_values_become_plain_strings(self, loader: YamlLoader) -> None:
        node = loader.load_snapshot('name: "quoted"\n')
        value = node.get("name").value
        assert value == "quoted"
        assert type(value) is str

    def test_empty_output_is_absent(self, loader: YamlLoader) -> None:
        assert loader.load_snapshot("").is_absent

    def test_malformed_output_raises(self, loader: YamlLoader) -> None:
        with pytest.raises(YAMLError):
            loader.load_snapshot("key: [unclosed\n")

    def test_size_limit(self, loader: YamlLoader, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(loader_module, "_MAX_DOCUMENT_SIZE", 10)
        with pytest.raises(YAMLSafetyError, match="maximum size"):
            loader.load_snapshot("name: a-rather-long-workspace-name\n")

    def test_node_count_limit(self) -> None:
        data = {"items": list(range(20))}
        with pytest.raises(YAMLSafetyError, match="node count"):
            YamlLoader._check_node_count(data, limit=10)


class TestCheckSyntax:
    def test_valid_document(self, loader: YamlLoader) -> None:
        assert loader.check_syntax("name: ws\nblocks:\n  - name: a\n") is None

    def test_error_has_position(self, loader: YamlLoader) -> None:
        issue = loader.check_syntax("name: ws\nblocks: [a, b\nkind: x\n")
        assert issue is not None
        assert issue.line is not None
        assert issue.line >= 1
        assert issue.message

    def test_bad_indentation(self, loader: YamlLoader) -> None:
        issue = loader.check_syntax("name: ws\n  organization: acme\n")
        assert issue is not None
        assert issue.line == 1

    def test_empty_document_is_valid(self, loader: YamlLoader) -> None:
        assert loader.check_syntax("") is None
