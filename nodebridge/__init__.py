"""nodebridge - call Node.js modules from Python through a supervised HTTP host."""

__version__ = "0.1.0"
__logo__ = "⬡"

from nodebridge.config.schema import BridgeConfig
from nodebridge.hosting import BinaryStream, InvocationRequest, NodeBridge, NodeHostSupervisor, create_node_bridge

__all__ = [
    "BinaryStream",
    "BridgeConfig",
    "InvocationRequest",
    "NodeBridge",
    "NodeHostSupervisor",
    "create_node_bridge",
    "__version__",
]
