"""Shared test fixtures for Polyscope."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from polyscope.models.document import DocumentSnapshot
from polyscope.models.snapshot import SnapshotNode
from polyscope.parser.index import EntityIndex
from polyscope.service.documents import DocumentStore

WORKSPACE_URI = "file:///ws/workspace.poly"
BLOCK_URI = "file:///ws/blocks/alpha/block.poly"

# Three blocks; only beta has an unpinned ``from:`` (line 7).
SAMPLE_WORKSPACE = """\
name: my-workspace
organization: acme
blocks:
  - name: alpha
    from: registry/alpha:1.0.0
    kind: generic
  - name: beta
    from: registry/beta
    kind: generic
  - name: gamma
    from: registry/gamma:2.1.0
    version: 2.1.0
"""

# Same content with the compact sequence style (items at the key's indent).
COMPACT_WORKSPACE = """\
name: my-workspace
organization: acme
blocks:
- name: alpha
  version: 1.0.0
- name: beta
  version: 2.0.0
"""

WORKSPACE_WITH_ACTIONS = """\
name: my-workspace
organization: acme
config:
  image:
    reference: ghcr.io/polycrate/polycrate
blocks:
  - name: alpha
    kind: generic
    actions:
      - name: install
        script:
          - echo install
      - name: uninstall
  - name: beta
    kind: k8sapp
"""

SAMPLE_BLOCK = """\
name: alpha
kind: generic
from: registry/alpha:latest
actions:
  - name: install
    script: |
      - name: not-an-action
      echo hi
  - name: uninstall
    playbook: uninstall.yml
"""


def make_document(text: str, uri: str = WORKSPACE_URI, revision: int = 1) -> DocumentSnapshot:
    return DocumentSnapshot.from_text(uri, text, revision)


def make_index(text: str, uri: str = WORKSPACE_URI) -> EntityIndex:
    return EntityIndex.build(make_document(text, uri))


def workspace_snapshot(**workspace: object) -> SnapshotNode:
    """A snapshot shaped like ``polycrate workspace snapshot`` output."""
    return SnapshotNode.wrap({"workspace": workspace})


class FakeOracle:
    """Snapshot source returning a fixed snapshot, optionally gated on an event."""

    def __init__(self, snapshot: SnapshotNode | None = None) -> None:
        self.snapshot = snapshot
        self.calls: list[tuple[Path, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_snapshot(self, root: Path, entity: str | None = None) -> SnapshotNode | None:
        self.calls.append((root, entity))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            return self.snapshot
        finally:
            self.in_flight -= 1


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore()


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    """A workspace directory with a marker file and one block directory."""
    (tmp_path / "workspace.poly").write_text(SAMPLE_WORKSPACE)
    block_dir = tmp_path / "blocks" / "alpha"
    block_dir.mkdir(parents=True)
    (block_dir / "block.poly").write_text(SAMPLE_BLOCK)
    return tmp_path
