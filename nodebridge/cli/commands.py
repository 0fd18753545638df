"""CLI commands for nodebridge.

Entry point for checking the worker requirements and running one-off
invocations against a Node project.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nodebridge import __logo__, __version__
from nodebridge.config.loader import load_config
from nodebridge.config.schema import BridgeConfig
from nodebridge.hosting.bridge import NodeBridge
from nodebridge.hosting.launcher import WorkerLauncher
from nodebridge.utils.exceptions import NodeBridgeError
from nodebridge.utils.logging_utils import configure_console_logging, ensure_rotating_log_file

app = typer.Typer(
    name="nodebridge",
    help=f"{__logo__} nodebridge - call Node.js modules from Python",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} nodebridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """nodebridge - call Node.js modules from Python."""


def _build_config(
    config_path: Optional[Path],
    project_path: Optional[str],
    port: Optional[int],
    watch: Optional[str],
    executable: Optional[str],
    entry_script: Optional[str],
) -> BridgeConfig:
    cfg = load_config(config_path)
    overrides: dict[str, Any] = {}
    if project_path is not None:
        overrides["project_path"] = project_path
    if port is not None:
        overrides["port"] = port
    if watch is not None:
        overrides["watch_file_extensions"] = [x.strip() for x in watch.split(",") if x.strip()]
    if executable is not None:
        overrides["executable"] = executable
    if entry_script is not None:
        overrides["entry_script"] = entry_script
    if overrides:
        cfg = cfg.model_copy(update={"worker": cfg.worker.model_copy(update=overrides)})
    return cfg


def _parse_args(raw_args: list[str]) -> list[Any]:
    parsed: list[Any] = []
    for raw in raw_args:
        try:
            parsed.append(json.loads(raw))
        except json.JSONDecodeError:
            parsed.append(raw)
    return parsed


@app.command()
def check(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (JSON)"),
    project_path: Optional[str] = typer.Option(None, "--project-path", "-p", help="Node project directory"),
    executable: Optional[str] = typer.Option(None, "--executable", help="Worker executable (default: node)"),
    entry_script: Optional[str] = typer.Option(None, "--entry-script", help="Worker entry script"),
) -> None:
    """Show whether the worker can be launched with the current configuration."""
    cfg = _build_config(config_path, project_path, None, None, executable, entry_script)
    report = WorkerLauncher(cfg.worker).requirements_report()
    checks = report["checks"]
    paths = report["paths"]
    table = Table(title="Node Host Requirements")
    table.add_column("Check", style="cyan")
    table.add_column("Value")
    table.add_column("Status")
    rows = [
        ("executable", paths["executable"] or cfg.worker.executable, checks["executableAvailable"]),
        ("entry script", paths["entryScript"], checks["entryScriptExists"]),
        ("project path", paths["projectPath"], checks["projectPathExists"]),
        ("node_modules", "", checks["nodeModulesExists"]),
    ]
    for name, value, ok in rows:
        table.add_row(name, str(value), "[green]ok[/green]" if ok else "[red]missing[/red]")
    console.print(table)
    for suggestion in report["suggestions"]:
        console.print(f"[yellow]- {suggestion}[/yellow]")
    required = ("executableAvailable", "entryScriptExists", "projectPathExists")
    if not all(checks[key] for key in required):
        raise typer.Exit(1)


@app.command()
def invoke(
    module: str = typer.Argument(..., help="Module path, relative to the project path"),
    args: Optional[list[str]] = typer.Option(None, "--arg", "-a", help="Argument (JSON, or a plain string)"),
    export: Optional[str] = typer.Option(None, "--export", "-e", help="Exported function (default export if omitted)"),
    text: bool = typer.Option(False, "--text", help="Expect a text/plain result"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (JSON)"),
    project_path: Optional[str] = typer.Option(None, "--project-path", "-p", help="Node project directory"),
    port: Optional[int] = typer.Option(None, "--port", help="Port requested from the worker (0 = any)"),
    watch: Optional[str] = typer.Option(None, "--watch", help="Comma-separated file extensions to watch"),
    executable: Optional[str] = typer.Option(None, "--executable", help="Worker executable (default: node)"),
    entry_script: Optional[str] = typer.Option(None, "--entry-script", help="Worker entry script"),
    verbose: bool = typer.Option(False, "--verbose", help="Show worker output and debug logs"),
    log_file: bool = typer.Option(False, "--log-file", help="Also log to ~/.nodebridge/logs/invoke.log"),
) -> None:
    """Invoke a Node module once and print its result."""
    configure_console_logging(verbose)
    if log_file:
        ensure_rotating_log_file("invoke", level="DEBUG")
    cfg = _build_config(config_path, project_path, port, watch, executable, entry_script)
    call_args = _parse_args(args or [])
    result_type: Any = str if text else Any

    async def run() -> Any:
        async with NodeBridge(cfg) as bridge:
            if export:
                return await bridge.invoke_export(module, export, *call_args, result_type=result_type)
            return await bridge.invoke(module, *call_args, result_type=result_type)

    try:
        result = asyncio.run(run())
    except NodeBridgeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        if exc.details:
            console.print_json(data=exc.details)
        raise typer.Exit(1)
    if isinstance(result, str):
        console.print(result, markup=False, highlight=False)
    else:
        console.print_json(data=result)


if __name__ == "__main__":
    app()
