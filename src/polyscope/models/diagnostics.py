"""Anomalies, diagnostics and per-revision diagnostic sets."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from polyscope.models.document import Range


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class Anomaly(BaseModel):
    """A detected problem that has not been mapped to a source range yet.

    ``subject_identity`` and ``field`` name what the problem is about;
    ``occurrence`` selects among duplicate entities with the same identity;
    ``parent_identity`` is tried when the subject itself has no source
    definition; ``line`` is used for problems that are not about an entity.
    """

    severity: Severity
    code: str
    message: str
    subject_identity: str | None = None
    field: str | None = None
    occurrence: int = 0
    parent_identity: str | None = None
    line: int | None = None

    model_config = {"frozen": True}


class Diagnostic(BaseModel):
    """An anomaly after range resolution, ready for display."""

    range: Range
    severity: Severity
    code: str
    message: str
    source: str = "polycrate"

    model_config = {"frozen": True}


class DiagnosticSet(BaseModel):
    """The complete diagnostics of one document revision."""

    uri: str
    revision: int
    diagnostics: tuple[Diagnostic, ...] = ()

    model_config = {"frozen": True}

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]
