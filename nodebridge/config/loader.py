"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from nodebridge.config.schema import BridgeConfig


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".nodebridge" / "config.json"


def load_config(config_path: Path | None = None) -> BridgeConfig:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object. Environment variables (NODEBRIDGE_*) apply
        only when no file exists.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            return BridgeConfig.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to use defaults."
            ) from e

    return BridgeConfig()


def save_config(config: BridgeConfig, config_path: Path | None = None) -> None:
    """Save configuration to file with camelCase keys."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = convert_to_camel(config.model_dump())
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic.
    Keys under worker.env are preserved (they are env var names, e.g. NODE_ENV)."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = camel_to_snake(k)
            if new_k == "env" and isinstance(v, dict):
                result[new_k] = dict(v)
            else:
                result[new_k] = convert_keys(v)
        return result
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase.
    Keys under worker.env are preserved (env var names)."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = snake_to_camel(k)
            if new_k == "env" and isinstance(v, dict):
                result[new_k] = dict(v)
            else:
                result[new_k] = convert_to_camel(v)
        return result
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
