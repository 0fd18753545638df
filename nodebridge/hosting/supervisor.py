"""Lifecycle supervisor for the Node host worker process."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from nodebridge.config.schema import BridgeConfig
from nodebridge.hosting.channel import InvocationChannel
from nodebridge.hosting.launcher import WorkerLauncher
from nodebridge.hosting.output import OutputSink, log_output_line
from nodebridge.hosting.process import ClassifierFactory, WorkerGeneration
from nodebridge.hosting.protocol import InvocationRequest
from nodebridge.hosting.readiness import PortNegotiator
from nodebridge.utils.exceptions import (
    DisposedError,
    NodeBridgeError,
    StaleGenerationError,
    StartupTimeoutError,
    WorkerUnavailableError,
)


@dataclass(slots=True)
class SupervisorStats:
    """Counters for launched processes and automatic retries."""

    launches: int = 0
    restarts: int = 0
    retries: int = 0


class NodeHostSupervisor:
    """
    Owns the worker process and routes invocations to it.

    At most one generation is current. Launching and retiring generations is
    serialized by a lock that is never held while waiting for readiness or
    for an HTTP response, so disposal can always proceed.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        launcher: WorkerLauncher | None = None,
        channel: InvocationChannel | None = None,
        classifier_factory: ClassifierFactory | None = None,
        output_sink: OutputSink = log_output_line,
        before_launch: Callable[[int], None] | None = None,
    ):
        self.config = config or BridgeConfig()
        self.launcher = launcher or WorkerLauncher(self.config.worker)
        self.channel = channel or InvocationChannel(
            host=self.config.invocation.host,
            timeout_seconds=self.config.invocation.timeout_seconds,
        )
        self.classifier_factory = classifier_factory or functools.partial(
            PortNegotiator, marker=self.config.worker.ready_marker
        )
        self.output_sink = output_sink
        self.before_launch = before_launch
        self.stats = SupervisorStats()
        self._generation: WorkerGeneration | None = None
        self._generation_counter = 0
        self._lock = asyncio.Lock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def generation(self) -> WorkerGeneration | None:
        return self._generation

    async def ensure_ready(self) -> WorkerGeneration:
        """Return a ready generation, launching the worker when none is live."""
        if self._disposed:
            raise DisposedError("ensure the Node host is ready")
        generation = self._generation
        if generation is None or not generation.alive:
            generation = await self._launch(stale=generation)
        try:
            await generation.wait_ready()
        except StartupTimeoutError:
            logger.error(
                "Node host generation {} did not report a port within {}s",
                generation.number,
                generation.startup_timeout,
            )
            await self._retire(generation, StartupTimeoutError(generation.startup_timeout, generation.number))
            raise
        if self._disposed:
            raise DisposedError("ensure the Node host is ready")
        return generation

    async def invoke(self, request: InvocationRequest, result_type: Any = Any) -> Any:
        """Invoke on the worker; relaunch and retry once on process-level failures."""
        max_retries = self.config.invocation.max_retries
        attempt = 0
        while True:
            try:
                return await self._invoke_once(request, result_type)
            except NodeBridgeError as exc:
                if self._disposed:
                    raise DisposedError("invoke") from exc
                if not exc.retryable:
                    raise
                if attempt >= max_retries:
                    raise WorkerUnavailableError(
                        f"Node host unavailable for module '{request.module_name}' "
                        f"after {attempt + 1} attempt(s): {exc.message}",
                        attempts=attempt + 1,
                        cause=exc,
                    ) from exc
                attempt += 1
                self.stats.retries += 1
                logger.warning(
                    "Invocation of {} failed ({}); relaunching Node host and retrying",
                    request.module_name,
                    exc.code,
                )
                generation = exc.details.get("generation")
                current = self._generation
                if current is not None and current.number == generation:
                    await self._retire(current, exc)

    async def _invoke_once(self, request: InvocationRequest, result_type: Any) -> Any:
        generation = await self.ensure_ready()
        if generation is not self._generation or not generation.alive:
            current = self._generation.number if self._generation else None
            raise StaleGenerationError(generation.number, current)
        assert generation.port is not None
        return await self.channel.send(request, generation.port, result_type, generation=generation.number)

    async def _launch(self, stale: WorkerGeneration | None) -> WorkerGeneration:
        async with self._lock:
            if self._disposed:
                raise DisposedError("launch the Node host")
            current = self._generation
            if current is not None and current is not stale and current.alive:
                # Another caller relaunched while we waited for the lock.
                return current
            if current is not None:
                await self._terminate(current, None)
                self.stats.restarts += 1
            self._generation_counter += 1
            number = self._generation_counter
            if self.before_launch is not None:
                self.before_launch(number)
            generation = await WorkerGeneration.launch(
                number,
                self.launcher,
                self.classifier_factory,
                self.output_sink,
                self.config.worker.startup_timeout_seconds,
            )
            self.stats.launches += 1
            if self._disposed:
                await self._terminate(generation, DisposedError("launch the Node host"))
                raise DisposedError("launch the Node host")
            self._generation = generation
            return generation

    async def _retire(self, generation: WorkerGeneration, reason: NodeBridgeError | None) -> None:
        """Terminate a generation if it is still the current one."""
        async with self._lock:
            if self._generation is not generation:
                return
            await self._terminate(generation, reason)
            self._generation = None
            self.stats.restarts += 1

    async def _terminate(self, generation: WorkerGeneration, reason: NodeBridgeError | None) -> None:
        await generation.terminate(self.config.worker.shutdown_grace_seconds, reason)

    async def dispose(self) -> None:
        """Stop the worker and release the HTTP client. Safe to call repeatedly."""
        if self._disposed:
            return
        self._disposed = True
        generation, self._generation = self._generation, None
        if generation is not None:
            await self._terminate(generation, DisposedError("wait for readiness"))
        await self.channel.aclose()
        self.launcher.cleanup()
        logger.info("Node host bridge disposed")

    async def __aenter__(self) -> NodeHostSupervisor:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()
