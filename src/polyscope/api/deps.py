"""Dependency injection for FastAPI: ValidationCoordinator singleton."""

from __future__ import annotations

from polyscope.service.coordinator import ValidationCoordinator

_coordinator: ValidationCoordinator | None = None


def init_coordinator(coordinator: ValidationCoordinator) -> None:
    """Set the global ValidationCoordinator (called at app startup)."""
    global _coordinator  # noqa: PLW0603
    _coordinator = coordinator


def get_coordinator() -> ValidationCoordinator:
    """FastAPI ``Depends`` provider for ValidationCoordinator."""
    if _coordinator is None:
        raise RuntimeError("ValidationCoordinator not initialised: call init_coordinator() first")
    return _coordinator


def reset_coordinator() -> None:
    """Clear the global ValidationCoordinator (for tests)."""
    global _coordinator  # noqa: PLW0603
    _coordinator = None
