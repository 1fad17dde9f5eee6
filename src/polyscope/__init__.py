"""Polyscope: structural context and diagnostic correlation for Polycrate files."""

__version__ = "0.1.0"
