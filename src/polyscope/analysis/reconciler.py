"""Snapshot reconciliation: CLI-resolved meaning + raw-text checks → anomalies."""

from __future__ import annotations

import logging
import re

from polyscope.models.diagnostics import Anomaly, Severity
from polyscope.models.document import DocumentKind, DocumentSnapshot
from polyscope.models.scope import EntityKind
from polyscope.models.snapshot import SnapshotNode
from polyscope.parser.index import EntityIndex
from polyscope.parser.loader import YamlLoader

logger = logging.getLogger("polyscope.reconciler")

BLOCK_KINDS = ("generic", "k8sapp", "k8scluster", "db", "kv", "mq", "app")
ACTION_DIRECTIVES = ("script", "playbook")
WORKSPACE_IDENTITY_FIELDS = ("name", "organization")
BLOCK_IDENTITY_FIELDS = ("name",)

VERSION_FIELD = "from"
_FLOATING_TAG_RE = re.compile(r"[:@]latest")
_SUGGESTED_VERSION = "1.0.0"


def document_kind(document: DocumentSnapshot, index: EntityIndex) -> DocumentKind:
    """File-name kind, refined by content for unrecognised file names."""
    kind = document.kind
    if kind != DocumentKind.OTHER:
        return kind
    if index.top_level_field("blocks") is not None:
        return DocumentKind.WORKSPACE
    if index.top_level_field("actions") is not None:
        return DocumentKind.BLOCK
    return DocumentKind.OTHER


class SnapshotReconciler:
    """Turns a document and an optional CLI snapshot into ordered anomalies.

    Snapshot rules trust the CLI's resolved values (defaults and inheritance
    applied).  Raw-text rules look at literal source values the snapshot
    normalises away; they always run and are never suppressed by snapshot
    findings.  Without a snapshot a minimal fallback rule set checks the
    document's identity fields.
    """

    def __init__(self, loader: YamlLoader | None = None) -> None:
        self._loader = loader or YamlLoader()

    def reconcile(
        self,
        document: DocumentSnapshot,
        snapshot: SnapshotNode | None,
        index: EntityIndex | None = None,
    ) -> list[Anomaly]:
        if index is None:
            index = EntityIndex.build(document)
        kind = document_kind(document, index)

        anomalies: list[Anomaly] = []
        if snapshot is not None and not snapshot.is_absent:
            anomalies.extend(self._check_snapshot(document, kind, snapshot, index))
        else:
            anomalies.extend(self._check_identity_fields(kind, index))
        anomalies.extend(self._check_syntax(document))
        anomalies.extend(self._check_version_references(kind, index))
        return self._in_document_order(anomalies, index)

    # -- snapshot-derived rules ----------------------------------------------

    def _check_snapshot(
        self,
        document: DocumentSnapshot,
        kind: DocumentKind,
        snapshot: SnapshotNode,
        index: EntityIndex,
    ) -> list[Anomaly]:
        workspace = snapshot.get("workspace")
        if not workspace.is_mapping:
            workspace = snapshot
        if kind == DocumentKind.WORKSPACE:
            return self._check_workspace_snapshot(workspace)
        if kind == DocumentKind.BLOCK:
            return self._check_block_document_snapshot(document, workspace, index)
        return []

    def _check_workspace_snapshot(self, workspace: SnapshotNode) -> list[Anomaly]:
        anomalies: list[Anomaly] = []
        for field in WORKSPACE_IDENTITY_FIELDS:
            if not workspace.get(field).present():
                anomalies.append(
                    Anomaly(
                        severity=Severity.ERROR,
                        code=f"MISSING_WORKSPACE_{field.upper()}",
                        message=f"Workspace {field} is missing",
                        field=field,
                    )
                )

        seen: dict[str, int] = {}
        for i, block in enumerate(workspace.get("blocks").items()):
            name = block.get("name").text()
            if name is None:
                anomalies.append(
                    Anomaly(
                        severity=Severity.ERROR,
                        code="MISSING_BLOCK_NAME",
                        message=f"Block at index {i} is missing name",
                    )
                )
                continue
            occurrence = seen.get(name, 0)
            seen[name] = occurrence + 1
            anomalies.extend(self._check_block_node(block, name, name, occurrence))
        return anomalies

    def _check_block_document_snapshot(
        self, document: DocumentSnapshot, workspace: SnapshotNode, index: EntityIndex
    ) -> list[Anomaly]:
        block_name = self._block_document_name(document, index)
        if block_name is None:
            return []
        for block in workspace.get("blocks").items():
            if block.get("name").text() == block_name:
                logger.debug("Found block '%s' in workspace snapshot", block_name)
                return self._check_block_node(block, block_name, None, 0)
        return [
            Anomaly(
                severity=Severity.WARNING,
                code="BLOCK_NOT_IN_WORKSPACE",
                message=f"Block '{block_name}' is not recognized by the workspace",
                field="name",
            )
        ]

    def _check_block_node(
        self, block: SnapshotNode, name: str, subject: str | None, occurrence: int
    ) -> list[Anomaly]:
        """Kind and action rules for one resolved block.

        *subject* is the block's identity in the current document, or ``None``
        when the document is the block's own ``block.poly``.
        """
        anomalies: list[Anomaly] = []
        kind = block.get("kind").text()
        if kind is None:
            anomalies.append(
                Anomaly(
                    severity=Severity.ERROR,
                    code="MISSING_BLOCK_KIND",
                    message=f"Block '{name}' is missing required field: kind",
                    subject_identity=subject,
                    field="kind",
                    occurrence=occurrence,
                )
            )
        elif kind not in BLOCK_KINDS:
            anomalies.append(
                Anomaly(
                    severity=Severity.WARNING,
                    code="INVALID_BLOCK_KIND",
                    message=(
                        f"Invalid kind value: {kind}. Valid values: {', '.join(BLOCK_KINDS)}"
                    ),
                    subject_identity=subject,
                    field="kind",
                    occurrence=occurrence,
                )
            )

        for i, action in enumerate(block.get("actions").items()):
            action_name = action.get("name").text()
            if action_name is None:
                anomalies.append(
                    Anomaly(
                        severity=Severity.ERROR,
                        code="MISSING_ACTION_NAME",
                        message=f"Action at index {i} in block '{name}' is missing name",
                        subject_identity=subject,
                        field="actions",
                        occurrence=occurrence,
                    )
                )
            if not any(action.get(directive).present() for directive in ACTION_DIRECTIVES):
                label = action_name or "unnamed"
                anomalies.append(
                    Anomaly(
                        severity=Severity.WARNING,
                        code="MISSING_ACTION_DIRECTIVE",
                        message=(
                            f"Action '{label}' in block '{name}' should have either "
                            f"'script' or 'playbook' field"
                        ),
                        subject_identity=(
                            _join(subject, action_name) if action_name is not None else subject
                        ),
                        field=None if action_name is not None else "actions",
                        parent_identity=subject,
                    )
                )
        return anomalies

    # -- fallback rules ------------------------------------------------------

    def _check_identity_fields(self, kind: DocumentKind, index: EntityIndex) -> list[Anomaly]:
        """Local identity-field checks used while the CLI is unavailable."""
        if kind == DocumentKind.WORKSPACE:
            required = WORKSPACE_IDENTITY_FIELDS
        elif kind == DocumentKind.BLOCK:
            required = BLOCK_IDENTITY_FIELDS
        else:
            return []
        anomalies: list[Anomaly] = []
        for field in required:
            ref = index.top_level_field(field)
            if ref is None or not ref.value:
                anomalies.append(
                    Anomaly(
                        severity=Severity.ERROR,
                        code="MISSING_REQUIRED_FIELD",
                        message=f"Missing required field: {field}",
                        field=field,
                    )
                )
        return anomalies

    # -- raw-text rules ------------------------------------------------------

    def _check_syntax(self, document: DocumentSnapshot) -> list[Anomaly]:
        issue = self._loader.check_syntax(document.text)
        if issue is None:
            return []
        return [
            Anomaly(
                severity=Severity.ERROR,
                code="YAML_SYNTAX_ERROR",
                message=f"YAML syntax error: {issue.message}",
                line=issue.line,
            )
        ]

    def _check_version_references(self, kind: DocumentKind, index: EntityIndex) -> list[Anomaly]:
        """Check every block's ``from:`` value on its own.

        The CLI rewrites these values, so only the literal text shows whether
        a version was pinned.
        """
        anomalies: list[Anomaly] = []
        if kind == DocumentKind.BLOCK:
            ref = index.top_level_field(VERSION_FIELD)
            if ref is not None and ref.value:
                name_ref = index.top_level_field("name")
                block_name = name_ref.value if name_ref and name_ref.value else "unnamed"
                anomaly = self._check_version_value(block_name, ref.value, None, 0)
                if anomaly is not None:
                    anomalies.append(anomaly)
            return anomalies

        seen: dict[str, int] = {}
        for block in index.references(EntityKind.BLOCK):
            occurrence = seen.get(block.identity, 0)
            seen[block.identity] = occurrence + 1
            if block.parent is not None:
                continue
            ref = index.find_field(block.identity, VERSION_FIELD, occurrence)
            if ref is None or not ref.value:
                continue
            anomaly = self._check_version_value(block.name, ref.value, block.identity, occurrence)
            if anomaly is not None:
                anomalies.append(anomaly)
        return anomalies

    @staticmethod
    def _check_version_value(
        block_name: str, value: str, subject: str | None, occurrence: int
    ) -> Anomaly | None:
        if _FLOATING_TAG_RE.search(value):
            pinned = _FLOATING_TAG_RE.sub(f":{_SUGGESTED_VERSION}", value, count=1)
            return Anomaly(
                severity=Severity.WARNING,
                code="FLOATING_VERSION",
                message=(
                    f"Block '{block_name}' uses 'from: {value}' with 'latest' tag. "
                    f"Consider using a specific version tag for reproducible builds "
                    f"(e.g., '{pinned}')"
                ),
                subject_identity=subject,
                field=VERSION_FIELD,
                occurrence=occurrence,
            )
        if ":" not in value and "@" not in value:
            return Anomaly(
                severity=Severity.WARNING,
                code="UNPINNED_VERSION",
                message=(
                    f"Block '{block_name}' uses 'from: {value}' without specifying a version. "
                    f"Consider using a specific version tag (e.g., '{value}:{_SUGGESTED_VERSION}')"
                ),
                subject_identity=subject,
                field=VERSION_FIELD,
                occurrence=occurrence,
            )
        return None

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _block_document_name(document: DocumentSnapshot, index: EntityIndex) -> str | None:
        """A block document names its block by its directory."""
        path = document.path
        if path is not None and path.parent.name:
            return path.parent.name
        ref = index.top_level_field("name")
        return ref.value if ref is not None else None

    @staticmethod
    def _in_document_order(anomalies: list[Anomaly], index: EntityIndex) -> list[Anomaly]:
        """Stable sort by best-known line; unresolvable anomalies go last."""

        def _key(anomaly: Anomaly) -> tuple[bool, int]:
            found = index.locate_precise(
                anomaly.subject_identity,
                anomaly.field,
                anomaly.occurrence,
                anomaly.parent_identity,
                anomaly.line,
            )
            if found is None:
                return (True, 0)
            return (False, found.start.line)

        return sorted(anomalies, key=_key)


def _join(parent: str | None, name: str) -> str:
    return f"{parent}.{name}" if parent else name
