"""YAML loading for oracle output and document syntax checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import MarkedYAMLError, YAMLError

from polyscope.models.snapshot import SnapshotNode

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 5_000_000  # 5M characters
_MAX_NODE_COUNT = 200_000
_MAX_DEPTH = 50


class YAMLSafetyError(Exception):
    """Raised when YAML input violates safety constraints.

    Distinct from parse errors: the input may be well-formed but is too
    large to load into memory as a snapshot.
    """


@dataclass(frozen=True)
class SyntaxIssue:
    """A YAML parse failure with its 0-based position, when known."""

    message: str
    line: int | None = None
    column: int | None = None


class YamlLoader:
    """Loads YAML with ruamel.yaml.

    Used twice per validation: once to turn the CLI's snapshot output into a
    :class:`SnapshotNode`, once to check the edited document for syntax
    errors the indentation scanner cannot see.
    """

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.preserve_quotes = True
        self._yaml.max_depth = _MAX_DEPTH

    # -- safety checks -------------------------------------------------------

    @staticmethod
    def _check_yaml_safety(content: str) -> None:
        if len(content) > _MAX_DOCUMENT_SIZE:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum size "
                f"({len(content):,} chars > {_MAX_DOCUMENT_SIZE:,} limit)"
            )

    @staticmethod
    def _check_node_count(data: Any, limit: int = _MAX_NODE_COUNT) -> None:
        """Post-parse defense-in-depth: reject documents with too many nodes."""
        count = 0
        stack: list[Any] = [data]
        while stack:
            node = stack.pop()
            count += 1
            if count > limit:
                raise YAMLSafetyError(f"YAML document exceeds maximum node count ({limit:,})")
            if isinstance(node, dict):
                stack.extend(node.values())
            elif isinstance(node, list):
                stack.extend(node)

    # -- public loading API --------------------------------------------------

    def load_snapshot(self, content: str) -> SnapshotNode:
        """Parse CLI output into a snapshot node.

        Raises ``YAMLError`` on malformed output and ``YAMLSafetyError`` on
        oversized output; empty output yields an absent node.
        """
        self._check_yaml_safety(content)
        data = self._yaml.load(content)
        if data is None:
            return SnapshotNode.absent()
        self._check_node_count(data)
        return SnapshotNode.wrap(self._to_plain_value(data))

    def check_syntax(self, content: str) -> SyntaxIssue | None:
        """Return the first syntax problem in *content*, or ``None``."""
        try:
            self._check_yaml_safety(content)
            self._yaml.load(content)
        except YAMLSafetyError as exc:
            return SyntaxIssue(message=str(exc))
        except MarkedYAMLError as exc:
            mark = exc.problem_mark or exc.context_mark
            message = exc.problem or exc.context or str(exc)
            if mark is None:
                return SyntaxIssue(message=message)
            return SyntaxIssue(message=message, line=mark.line, column=mark.column)
        except YAMLError as exc:
            return SyntaxIssue(message=str(exc))
        return None

    def _to_plain_value(self, data: Any) -> Any:
        """Convert ruamel.yaml CommentedMap/Seq to plain Python dict/list."""
        if isinstance(data, CommentedMap):
            return {str(k): self._to_plain_value(v) for k, v in data.items()}
        if isinstance(data, CommentedSeq):
            return [self._to_plain_value(item) for item in data]
        if isinstance(data, dict):
            return {str(k): self._to_plain_value(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self._to_plain_value(item) for item in data]
        if isinstance(data, str):
            return str(data)
        return data
