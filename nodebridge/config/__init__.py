"""Configuration module for nodebridge."""

from nodebridge.config.loader import get_config_path, load_config, save_config
from nodebridge.config.schema import BridgeConfig, InvocationConfig, WorkerConfig

__all__ = ["BridgeConfig", "InvocationConfig", "WorkerConfig", "get_config_path", "load_config", "save_config"]
