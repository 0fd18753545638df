"""Out-of-process Node host: launch, port negotiation and HTTP invocation."""

from .bridge import NodeBridge, create_node_bridge
from .channel import InvocationChannel
from .launcher import WorkerLauncher, build_command_line_options
from .output import OutputMonitor, log_output_line
from .process import WorkerGeneration
from .protocol import BinaryStream, ContentType, InvocationRequest
from .readiness import PortNegotiator, ReadinessState
from .resources import EmbeddedResourceProvider, ResourceProvider
from .supervisor import NodeHostSupervisor, SupervisorStats

__all__ = [
    "BinaryStream",
    "ContentType",
    "EmbeddedResourceProvider",
    "InvocationChannel",
    "InvocationRequest",
    "NodeBridge",
    "NodeHostSupervisor",
    "OutputMonitor",
    "PortNegotiator",
    "ReadinessState",
    "ResourceProvider",
    "SupervisorStats",
    "WorkerGeneration",
    "WorkerLauncher",
    "build_command_line_options",
    "create_node_bridge",
    "log_output_line",
]
