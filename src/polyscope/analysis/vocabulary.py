"""Keyword suggestions chosen by structural context."""

from __future__ import annotations

from dataclasses import dataclass

from polyscope.analysis.reconciler import BLOCK_KINDS
from polyscope.models.context import EditorContext
from polyscope.models.document import DocumentKind
from polyscope.models.scope import EntityKind


@dataclass(frozen=True)
class Suggestion:
    label: str
    detail: str
    is_value: bool = False

    @property
    def insert_text(self) -> str:
        return self.label if self.is_value else f"{self.label}: "


WORKSPACE_FIELDS = (
    Suggestion("name", "Workspace name (required)"),
    Suggestion("description", "Workspace description"),
    Suggestion("organization", "Organization name (required)"),
    Suggestion("labels", "Workspace labels"),
    Suggestion("alias", "Workspace aliases"),
    Suggestion("config", "Workspace configuration"),
    Suggestion("extraenv", "Extra environment variables"),
    Suggestion("extramounts", "Extra volume mounts"),
    Suggestion("events", "Event handlers"),
    Suggestion("dependencies", "Workspace dependencies"),
    Suggestion("sync", "Sync configuration"),
    Suggestion("inventory", "Ansible inventory"),
    Suggestion("kubeconfig", "Kubernetes config"),
    Suggestion("registry", "Container registry"),
    Suggestion("blocks", "Workspace blocks"),
    Suggestion("workflows", "Workspace workflows"),
)

WORKSPACE_CONFIG_FIELDS = (
    Suggestion("image", "Container image configuration"),
    Suggestion("blocksroot", "Blocks directory"),
    Suggestion("logsroot", "Logs directory"),
    Suggestion("blocksconfig", "Block config filename"),
    Suggestion("workspaceconfig", "Workspace config filename"),
    Suggestion("workflowsroot", "Workflows directory"),
    Suggestion("artifactsroot", "Artifacts directory"),
    Suggestion("containerroot", "Container root path"),
    Suggestion("sshprivatekey", "SSH private key file"),
    Suggestion("sshpublickey", "SSH public key file"),
    Suggestion("remoteroot", "Remote root path"),
    Suggestion("dockerfile", "Dockerfile path"),
    Suggestion("globals", "Global variables"),
)

BLOCK_FIELDS = (
    Suggestion("name", "Block name (required)"),
    Suggestion("display_name", "Display name"),
    Suggestion("description", "Block description"),
    Suggestion("kind", "Block kind (required)"),
    Suggestion("type", "Block type"),
    Suggestion("flavor", "Block flavor"),
    Suggestion("version", "Block version"),
    Suggestion("labels", "Block labels"),
    Suggestion("alias", "Block aliases"),
    Suggestion("config", "Block configuration"),
    Suggestion("actions", "Block actions"),
    Suggestion("supports_ha", "High availability support"),
    Suggestion("template", "Template block"),
    Suggestion("from", "Base block"),
    Suggestion("workdir", "Working directory"),
    Suggestion("inventory", "Inventory configuration"),
    Suggestion("kubeconfig", "Kubeconfig settings"),
    Suggestion("artifacts", "Artifacts configuration"),
)

ACTION_FIELDS = (
    Suggestion("name", "Action name (required)"),
    Suggestion("description", "Action description"),
    Suggestion("script", "Shell commands to run"),
    Suggestion("playbook", "Ansible playbook to run"),
    Suggestion("prompt", "Confirmation prompt"),
    Suggestion("interactive", "Attach a TTY"),
)

BLOCK_KIND_VALUES = tuple(Suggestion(kind, "Block kind", is_value=True) for kind in BLOCK_KINDS)


def suggestions_for(
    context: EditorContext, document_kind: DocumentKind, line_prefix: str = ""
) -> list[Suggestion]:
    """Keywords that fit *context*; the generic list when nothing narrower applies."""
    if line_prefix.strip().endswith("kind:"):
        return list(BLOCK_KIND_VALUES)

    section = context.innermost_section
    if context.entity_kind == EntityKind.ACTION and context.is_inside_entity_body:
        return list(ACTION_FIELDS)
    if context.entity_identity is not None and context.is_inside_entity_body:
        if section == "config" and document_kind == DocumentKind.WORKSPACE:
            # Block config contents are defined by the block itself.
            return []
        return list(BLOCK_FIELDS)
    if document_kind == DocumentKind.BLOCK:
        return list(BLOCK_FIELDS) if section is None else []
    if section == "blocks":
        return list(BLOCK_FIELDS)
    if section == "config":
        return list(WORKSPACE_CONFIG_FIELDS)
    return list(WORKSPACE_FIELDS)
