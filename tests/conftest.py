"""Pytest hooks and fixtures."""

import shutil
import sys
from pathlib import Path

import pytest

from nodebridge.config.schema import BridgeConfig, InvocationConfig, WorkerConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def pytest_collection_modifyitems(config, items):
    """Skip requires_node tests when no node executable is installed."""
    if shutil.which("node"):
        return
    skip = pytest.mark.skip(reason="Requires Node.js on PATH")
    for item in items:
        if "requires_node" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def worker_script() -> Path:
    return FIXTURES_DIR / "echo_worker.py"


@pytest.fixture
def make_config(tmp_path, worker_script):
    """Build a BridgeConfig that launches the Python echo worker."""

    def _make(*, env: dict[str, str] | None = None, invocation: dict | None = None, **worker) -> BridgeConfig:
        worker_fields = {
            "executable": sys.executable,
            "entry_script": str(worker_script),
            "project_path": str(tmp_path),
            "startup_timeout_seconds": 15.0,
            "shutdown_grace_seconds": 2.0,
            "env": env or {},
        }
        worker_fields.update(worker)
        invocation_fields = {"host": "127.0.0.1", "timeout_seconds": 15.0}
        invocation_fields.update(invocation or {})
        return BridgeConfig(worker=WorkerConfig(**worker_fields), invocation=InvocationConfig(**invocation_fields))

    return _make
