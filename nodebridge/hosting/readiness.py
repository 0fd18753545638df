"""Per-generation readiness gate and the listening-port line parser."""

from __future__ import annotations

import asyncio
import re

from loguru import logger

from nodebridge.utils.exceptions import NodeBridgeError, StartupTimeoutError

DEFAULT_READY_MARKER = "nodebridge.HttpHost"


class ReadinessState:
    """
    Readiness of one worker generation.

    Settled exactly once: either ready with a port (by the stdout reader) or
    failed (process exited, bridge disposed). Any number of callers may wait.
    """

    def __init__(self, generation: int):
        self.generation = generation
        self.port: int | None = None
        self.failure: NodeBridgeError | None = None
        self._settled = asyncio.Event()

    @property
    def ready(self) -> bool:
        return self.port is not None

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def mark_ready(self, port: int) -> bool:
        """Record the negotiated port. Returns False when already settled."""
        if self._settled.is_set():
            return False
        self.port = port
        self._settled.set()
        return True

    def mark_failed(self, failure: NodeBridgeError) -> bool:
        """Fail every waiter. Returns False when already settled."""
        if self._settled.is_set():
            return False
        self.failure = failure
        self._settled.set()
        return True

    async def wait(self, timeout: float) -> int:
        """Wait for the port; raise the settled failure or StartupTimeoutError."""
        if not self._settled.is_set():
            if timeout <= 0:
                raise StartupTimeoutError(timeout, self.generation)
            try:
                await asyncio.wait_for(self._settled.wait(), timeout)
            except asyncio.TimeoutError:
                raise StartupTimeoutError(round(timeout, 3), self.generation) from None
        if self.failure is not None:
            # Each waiter gets its own instance so tracebacks do not accumulate.
            raise self.failure.clone()
        assert self.port is not None
        return self.port


def build_port_pattern(marker: str) -> re.Pattern[str]:
    return re.compile(r"^\[" + re.escape(marker) + r":Listening on port (\d+)\]$")


class PortNegotiator:
    """
    Stdout classifier that extracts the listening port.

    Only the first matching line of a generation is honoured; once a port is
    known every line, including later readiness lines, is forwarded.
    """

    def __init__(self, readiness: ReadinessState, marker: str = DEFAULT_READY_MARKER):
        self.readiness = readiness
        self.pattern = build_port_pattern(marker)

    def __call__(self, line: str) -> bool:
        if self.readiness.settled:
            return False
        match = self.pattern.match(line)
        if match is None:
            return False
        port = int(match.group(1))
        if not 0 < port < 65536:
            logger.warning("Node host reported an invalid port: {}", port)
            return False
        if not self.readiness.mark_ready(port):
            return False
        logger.debug("Node host generation {} listening on port {}", self.readiness.generation, port)
        return True
