"""Configuration schema using Pydantic.

Single data model and defaults for the bridge, persisted to ~/.nodebridge/config.json
and overridable through NODEBRIDGE_* environment variables.
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerConfig(BaseModel):
    """How the worker process is launched and supervised."""
    executable: str = "node"
    entry_script: str | None = None  # None = bundled content/entrypoint-http.js
    extra_args: list[str] = Field(default_factory=list)  # Inserted before --port
    project_path: str = "."  # Working directory; <project>/node_modules goes on NODE_PATH
    port: int = Field(default=0, ge=0, le=65535)  # 0 lets the worker pick a free port
    watch_file_extensions: list[str] = Field(default_factory=list)  # Passed as --watch js,ts
    env: dict[str, str] = Field(default_factory=dict)
    ready_marker: str = "nodebridge.HttpHost"
    startup_timeout_seconds: float = Field(default=60.0, gt=0)
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)
    output_line_limit: int = Field(default=1024 * 1024, ge=1024)

    @property
    def project_dir(self) -> Path:
        return Path(self.project_path).expanduser().resolve()


class InvocationConfig(BaseModel):
    """HTTP exchange settings."""
    host: str = "localhost"
    timeout_seconds: float | None = None  # None waits for the worker indefinitely
    max_retries: int = Field(default=1, ge=0, le=1)  # Relaunch-and-retry budget per call


class BridgeConfig(BaseSettings):
    """Root configuration for nodebridge."""

    model_config = SettingsConfigDict(env_prefix="NODEBRIDGE_", env_nested_delimiter="__")

    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    invocation: InvocationConfig = Field(default_factory=InvocationConfig)
