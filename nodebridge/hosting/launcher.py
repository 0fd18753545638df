"""Builds the worker command line and spawns the process."""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger

from nodebridge.config.schema import WorkerConfig
from nodebridge.hosting.resources import HTTP_ENTRYPOINT, EmbeddedResourceProvider, ResourceProvider
from nodebridge.utils.exceptions import ErrorCategory, NodeBridgeError


def build_command_line_options(port: int, watch_file_extensions: list[str] | None = None) -> list[str]:
    """--port <n> and, when extensions are configured, --watch <ext,ext>."""
    options = ["--port", str(port)]
    extensions = [ext.strip() for ext in watch_file_extensions or [] if ext.strip()]
    if extensions:
        options += ["--watch", ",".join(extensions)]
    return options


class WorkerLauncher:
    """Resolves the entry script and starts worker processes from a WorkerConfig."""

    def __init__(self, config: WorkerConfig, resources: ResourceProvider | None = None):
        self.config = config
        self.resources = resources or EmbeddedResourceProvider()
        self._materialized_script: Path | None = None

    def resolve_executable(self) -> str | None:
        return shutil.which(self.config.executable)

    def resolve_entry_script(self) -> Path:
        """Configured script, or the bundled entry point written to a temp file once."""
        if self.config.entry_script:
            return Path(self.config.entry_script).expanduser().resolve()
        if self._materialized_script is None or not self._materialized_script.exists():
            source = self.resources.read(HTTP_ENTRYPOINT)
            fd, name = tempfile.mkstemp(prefix="nodebridge-", suffix=".js")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source)
            self._materialized_script = Path(name)
            logger.debug("Wrote bundled Node host entry point to {}", name)
        return self._materialized_script

    def build_command(self) -> list[str]:
        return [
            self.resolve_executable() or self.config.executable,
            str(self.resolve_entry_script()),
            *self.config.extra_args,
            *build_command_line_options(self.config.port, self.config.watch_file_extensions),
        ]

    def build_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self.config.env)
        node_modules = str(self.config.project_dir / "node_modules")
        existing = env.get("NODE_PATH")
        env["NODE_PATH"] = node_modules + (os.pathsep + existing if existing else "")
        env.setdefault("NODE_NO_WARNINGS", "1")
        return env

    async def spawn(self) -> asyncio.subprocess.Process:
        cwd = self.config.project_dir
        if not cwd.is_dir():
            raise NodeBridgeError(
                f"Node host project path does not exist: {cwd}",
                code="PROJECT_NOT_FOUND",
                details={"project_path": str(cwd)},
            )
        command = self.build_command()
        logger.debug("Node host command: {}", " ".join(command))
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=self.build_env(),
                limit=self.config.output_line_limit,
            )
        except OSError as exc:
            raise NodeBridgeError(
                f"Failed to start Node host: {exc}",
                code="HOST_START_FAILED",
                category=ErrorCategory.FATAL,
                details={"command": command},
            ) from exc

    def requirements_report(self) -> dict[str, Any]:
        """Collect runtime requirements and readiness checks for the worker."""
        executable = self.resolve_executable()
        project_dir = self.config.project_dir
        entry_script: Path | str
        if self.config.entry_script:
            entry_script = Path(self.config.entry_script).expanduser().resolve()
            entry_exists = entry_script.exists()
        else:
            path_for = getattr(self.resources, "path_for", None)
            entry_script = path_for(HTTP_ENTRYPOINT) if path_for else HTTP_ENTRYPOINT
            try:
                self.resources.read(HTTP_ENTRYPOINT)
                entry_exists = True
            except OSError:
                entry_exists = False
        checks = {
            "executableAvailable": bool(executable),
            "entryScriptExists": entry_exists,
            "projectPathExists": project_dir.is_dir(),
            "nodeModulesExists": (project_dir / "node_modules").is_dir(),
        }
        suggestions: list[str] = []
        if not checks["executableAvailable"]:
            suggestions.append(f"Install `{self.config.executable}` and ensure it is in PATH.")
        if not checks["entryScriptExists"]:
            suggestions.append(f"Entry script not found: {entry_script}")
        if not checks["projectPathExists"]:
            suggestions.append(f"Project path does not exist: {project_dir}")
        return {
            "paths": {
                "executable": executable or "",
                "entryScript": str(entry_script),
                "projectPath": str(project_dir),
            },
            "checks": checks,
            "suggestions": suggestions,
        }

    def cleanup(self) -> None:
        """Remove the materialized entry script, if any."""
        script, self._materialized_script = self._materialized_script, None
        if script is not None:
            try:
                script.unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("Could not remove {}: {}", script, exc)
