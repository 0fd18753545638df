"""One worker process generation: the process, its readers and its readiness gate."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from loguru import logger

from nodebridge.hosting.launcher import WorkerLauncher
from nodebridge.hosting.output import LineClassifier, OutputMonitor, OutputSink
from nodebridge.hosting.readiness import ReadinessState
from nodebridge.utils.exceptions import DisposedError, NodeBridgeError, WorkerExitedError

ClassifierFactory = Callable[[ReadinessState], LineClassifier]


class WorkerGeneration:
    """
    Handle for a single worker process lifetime.

    Never restarted in place: the supervisor retires it and launches a new
    generation with the next number.
    """

    def __init__(
        self,
        number: int,
        process: asyncio.subprocess.Process,
        readiness: ReadinessState,
        monitors: list[OutputMonitor],
        startup_timeout: float,
    ):
        self.number = number
        self.process = process
        self.readiness = readiness
        self.monitors = monitors
        self.startup_timeout = startup_timeout
        self.deadline = asyncio.get_running_loop().time() + startup_timeout
        self.retired = False
        self._exit_task = asyncio.create_task(self._watch_exit(), name=f"node-host-exit-{number}")

    @classmethod
    async def launch(
        cls,
        number: int,
        launcher: WorkerLauncher,
        classifier_factory: ClassifierFactory,
        sink: OutputSink,
        startup_timeout: float,
    ) -> WorkerGeneration:
        readiness = ReadinessState(number)
        process = await launcher.spawn()
        assert process.stdout is not None and process.stderr is not None
        monitors = [
            OutputMonitor(process.stdout, "stdout", sink, classifier_factory(readiness)),
            OutputMonitor(process.stderr, "stderr", sink),
        ]
        for monitor in monitors:
            monitor.start()
        logger.info("Node host generation {} started (PID {})", number, process.pid)
        return cls(number, process, readiness, monitors, startup_timeout)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def port(self) -> int | None:
        return self.readiness.port

    @property
    def alive(self) -> bool:
        return not self.retired and self.process.returncode is None

    @property
    def ready(self) -> bool:
        return self.alive and self.readiness.ready

    async def wait_ready(self) -> int:
        """Wait at the readiness gate until the shared startup deadline."""
        remaining = self.deadline - asyncio.get_running_loop().time()
        return await self.readiness.wait(remaining)

    async def _watch_exit(self) -> None:
        code = await self.process.wait()
        if not self.readiness.settled:
            # Let the reader see a readiness line printed just before exit.
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self.monitors[0].wait_closed(), 1.0)
        if self.readiness.mark_failed(WorkerExitedError(code, self.number)):
            logger.warning("Node host generation {} exited with code {} before it was ready", self.number, code)
        elif not self.retired:
            logger.warning("Node host generation {} exited unexpectedly with code {}", self.number, code)

    async def terminate(self, grace_seconds: float, reason: NodeBridgeError | None = None) -> int | None:
        """Retire the generation: fail waiters, SIGTERM, then SIGKILL after the grace period."""
        self.retired = True
        self.readiness.mark_failed(reason or DisposedError("wait for readiness"))
        if self.process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), grace_seconds)
            except asyncio.TimeoutError:
                logger.warning("Node host generation {} ignored SIGTERM; killing", self.number)
                with contextlib.suppress(ProcessLookupError):
                    self.process.kill()
                await self.process.wait()
        for monitor in self.monitors:
            await monitor.stop()
        if not self._exit_task.done():
            self._exit_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._exit_task
        logger.info("Node host generation {} stopped (exit code {})", self.number, self.process.returncode)
        return self.process.returncode
