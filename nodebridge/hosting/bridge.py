"""Caller-facing facade: invoke Node modules by name."""

from __future__ import annotations

from typing import Any

from nodebridge.config.schema import BridgeConfig
from nodebridge.hosting.protocol import InvocationRequest
from nodebridge.hosting.supervisor import NodeHostSupervisor


class NodeBridge:
    """Thin wrapper around the supervisor with module/export call helpers."""

    def __init__(self, config: BridgeConfig | None = None, *, supervisor: NodeHostSupervisor | None = None):
        self.supervisor = supervisor or NodeHostSupervisor(config)

    @property
    def config(self) -> BridgeConfig:
        return self.supervisor.config

    async def invoke(self, module_name: str, *args: Any, result_type: Any = Any) -> Any:
        """Call the module's default export."""
        return await self.supervisor.invoke(InvocationRequest(module_name, None, args), result_type)

    async def invoke_export(
        self, module_name: str, export_name: str, *args: Any, result_type: Any = Any
    ) -> Any:
        """Call a named export of the module."""
        return await self.supervisor.invoke(InvocationRequest(module_name, export_name, args), result_type)

    async def dispose(self) -> None:
        await self.supervisor.dispose()

    async def __aenter__(self) -> NodeBridge:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()


def create_node_bridge(config: BridgeConfig | None = None, **worker_overrides: Any) -> NodeBridge:
    """Build a bridge from config, overriding worker fields (e.g. project_path="web")."""
    config = config or BridgeConfig()
    if worker_overrides:
        worker = config.worker.model_copy(update=worker_overrides)
        config = config.model_copy(update={"worker": worker})
    return NodeBridge(config)
