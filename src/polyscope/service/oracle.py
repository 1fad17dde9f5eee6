"""Validation oracle: the ``polycrate`` CLI and workspace-root discovery."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from ruamel.yaml.error import YAMLError

from polyscope.models.snapshot import SnapshotNode
from polyscope.parser.loader import YamlLoader, YAMLSafetyError

logger = logging.getLogger("polyscope.oracle")

WORKSPACE_MARKERS = ("workspace.poly", ".workspace", ".polycrate")


class OracleError(Exception):
    """The CLI could not produce a usable result."""


def find_workspace_root(start: Path) -> Path | None:
    """Walk *start* and its ancestors for a workspace marker file."""
    current = start if start.is_dir() else start.parent
    for directory in (current, *current.parents):
        if any((directory / marker).exists() for marker in WORKSPACE_MARKERS):
            logger.debug("Found workspace root: %s", directory)
            return directory
    logger.debug("No workspace root found starting from: %s", start)
    return None


class OracleClient:
    """Runs the CLI out of process and parses its YAML output.

    Every failure mode (missing binary, non-zero exit, empty or malformed
    output, timeout) makes :meth:`fetch_snapshot` return ``None``.  If the
    awaiting task is cancelled, the child process is terminated.
    """

    def __init__(
        self,
        cli_path: str = "polycrate",
        timeout_seconds: float | None = None,
        loader: YamlLoader | None = None,
    ) -> None:
        self._cli_path = cli_path
        self._timeout = timeout_seconds
        self._loader = loader or YamlLoader()

    @property
    def cli_path(self) -> str:
        return self._cli_path

    async def fetch_snapshot(self, root: Path, entity: str | None = None) -> SnapshotNode | None:
        """Resolved workspace (or one block, when *entity* is given) under *root*."""
        args = ["workspace", "snapshot"] if entity is None else ["blocks", "inspect", entity]
        try:
            output = await self.run(args, root)
            if not output.strip():
                raise OracleError("CLI returned empty output")
            try:
                snapshot = self._loader.load_snapshot(output)
            except (YAMLError, YAMLSafetyError) as exc:
                raise OracleError(f"CLI returned malformed output: {exc}") from exc
        except OracleError as exc:
            logger.info("Validation oracle unavailable (%s): %s", " ".join(args), exc)
            return None
        if not snapshot.is_mapping:
            logger.info("Validation oracle returned no usable snapshot for %s", root)
            return None
        return snapshot

    async def version(self) -> str | None:
        try:
            output = await self.run(["version"], Path.cwd())
        except OracleError as exc:
            logger.info("CLI not available: %s", exc)
            return None
        return output.strip() or None

    async def run(self, args: list[str], cwd: Path) -> str:
        """Run the CLI with *args* in *cwd*; stdout on success.

        Raises :class:`OracleError` on any failure.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._cli_path,
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise OracleError(f"Cannot start '{self._cli_path}': {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except TimeoutError as exc:
            await _terminate(process)
            raise OracleError(f"Command timed out after {self._timeout}s") from exc
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise OracleError(f"Command failed with code {process.returncode}: {message}")
        return stdout.decode("utf-8", errors="replace")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()
