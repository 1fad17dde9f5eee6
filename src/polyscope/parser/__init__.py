"""Raw-text scanning and YAML loading for Polycrate documents."""

from polyscope.parser.index import EntityIndex
from polyscope.parser.loader import SyntaxIssue, YamlLoader, YAMLSafetyError
from polyscope.parser.scope import ScopeScan, ScopeTracker, scopes_at

__all__ = [
    "EntityIndex",
    "ScopeScan",
    "ScopeTracker",
    "SyntaxIssue",
    "YAMLSafetyError",
    "YamlLoader",
    "scopes_at",
]
