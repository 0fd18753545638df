import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from nodebridge.cli.commands import _build_config, _parse_args, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _drop_cli_log_sinks():
    yield
    # invoke() installs a stderr sink bound to the runner's captured stream.
    logger.remove()


def _write_config(tmp_path, worker_script) -> str:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "worker": {
                    "executable": sys.executable,
                    "entryScript": str(worker_script),
                    "projectPath": str(tmp_path),
                    "startupTimeoutSeconds": 15,
                },
                "invocation": {"host": "127.0.0.1", "timeoutSeconds": 15},
            }
        ),
        encoding="utf-8",
    )
    return str(path)


def test_parse_args_accepts_json_and_plain_strings() -> None:
    assert _parse_args(['"a"', "1", "true", '{"k": [1]}', "plain text"]) == ["a", 1, True, {"k": [1]}, "plain text"]


def test_build_config_applies_worker_overrides(tmp_path) -> None:
    cfg = _build_config(tmp_path / "missing.json", str(tmp_path), 4100, "js, ts,", "nodejs", None)
    assert cfg.worker.project_path == str(tmp_path)
    assert cfg.worker.port == 4100
    assert cfg.worker.watch_file_extensions == ["js", "ts"]
    assert cfg.worker.executable == "nodejs"
    assert cfg.worker.entry_script is None


def test_version_option() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "nodebridge v" in result.output


def test_check_passes_with_available_worker(tmp_path, worker_script) -> None:
    result = runner.invoke(
        app,
        [
            "check",
            "--config",
            str(tmp_path / "missing.json"),
            "--executable",
            sys.executable,
            "--entry-script",
            str(worker_script),
            "--project-path",
            str(tmp_path),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Node Host Requirements" in result.output


def test_check_fails_without_executable(tmp_path) -> None:
    result = runner.invoke(
        app,
        [
            "check",
            "--config",
            str(tmp_path / "missing.json"),
            "--executable",
            "definitely-not-a-real-node-binary",
            "--project-path",
            str(tmp_path),
        ],
    )
    assert result.exit_code == 1
    assert "definitely-not-a-real-node-binary" in result.output


def test_invoke_prints_json_result(tmp_path, worker_script) -> None:
    config_path = _write_config(tmp_path, worker_script)
    result = runner.invoke(app, ["invoke", "echo", "--config", config_path, "--arg", '"a"', "--arg", "1"])
    assert result.exit_code == 0, result.output
    assert '"a"' in result.output
    assert "1" in result.output


def test_invoke_prints_text_result(tmp_path, worker_script) -> None:
    config_path = _write_config(tmp_path, worker_script)
    result = runner.invoke(app, ["invoke", "text", "--config", config_path, "--text", "--arg", "hello there"])
    assert result.exit_code == 0, result.output
    assert "hello there" in result.output


def test_invoke_reports_remote_errors(tmp_path, worker_script) -> None:
    config_path = _write_config(tmp_path, worker_script)
    result = runner.invoke(app, ["invoke", "fail", "--config", config_path, "--arg", "kaput"])
    assert result.exit_code == 1
    assert "REMOTE_INVOCATION_FAILED" in result.output
    assert "kaput" in result.output
