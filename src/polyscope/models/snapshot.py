"""Tagged-variant view over the CLI's resolved workspace snapshot.

The snapshot is arbitrary nested YAML.  Every accessor fails closed: asking a
scalar for a key, or a mapping for its items, yields an absent node or an
empty list instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class NodeKind(StrEnum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"
    ABSENT = "absent"


@dataclass(frozen=True, eq=False)
class SnapshotNode:
    kind: NodeKind
    value: Any = None

    @classmethod
    def wrap(cls, data: Any) -> SnapshotNode:
        if isinstance(data, SnapshotNode):
            return data
        if data is None:
            return _ABSENT
        if isinstance(data, dict):
            return cls(NodeKind.MAPPING, {str(k): v for k, v in data.items()})
        if isinstance(data, (list, tuple)):
            return cls(NodeKind.SEQUENCE, list(data))
        return cls(NodeKind.SCALAR, data)

    @classmethod
    def absent(cls) -> SnapshotNode:
        return _ABSENT

    @property
    def is_absent(self) -> bool:
        return self.kind == NodeKind.ABSENT

    @property
    def is_mapping(self) -> bool:
        return self.kind == NodeKind.MAPPING

    def get(self, key: str) -> SnapshotNode:
        """Child node under *key*; absent unless this is a mapping holding it."""
        if self.kind != NodeKind.MAPPING:
            return _ABSENT
        return SnapshotNode.wrap(self.value.get(key))

    def items(self) -> list[SnapshotNode]:
        """Elements of a sequence; empty for any other kind."""
        if self.kind != NodeKind.SEQUENCE:
            return []
        return [SnapshotNode.wrap(item) for item in self.value]

    def text(self) -> str | None:
        """Non-empty scalar rendered as a string, else ``None``."""
        if self.kind != NodeKind.SCALAR:
            return None
        if isinstance(self.value, bool):
            return str(self.value).lower()
        rendered = str(self.value).strip()
        return rendered or None

    def present(self) -> bool:
        """True when the node holds a meaningful value.

        Collections always count as present; scalars count unless they are
        empty strings, zero or ``false``.
        """
        if self.kind == NodeKind.ABSENT:
            return False
        if self.kind == NodeKind.SCALAR:
            return bool(self.value)
        return True


_ABSENT = SnapshotNode(NodeKind.ABSENT)
