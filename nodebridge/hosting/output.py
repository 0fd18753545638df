"""Line-by-line readers for the worker's stdout/stderr."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

LineClassifier = Callable[[str], bool]
"""Returns True when it consumed the line, so the line is not forwarded."""

OutputSink = Callable[[str, str], None]
"""Receives (line, stream_name) for every forwarded line."""


def log_output_line(line: str, stream: str) -> None:
    """Default sink: forward worker output to loguru."""
    if stream == "stderr":
        logger.warning("[node-host] {}", line)
    else:
        logger.info("[node-host] {}", line)


class OutputMonitor:
    """Reads one worker stream on its own task and dispatches each line."""

    def __init__(
        self,
        stream: asyncio.StreamReader,
        name: str,
        sink: OutputSink = log_output_line,
        classifier: LineClassifier | None = None,
    ):
        self.stream = stream
        self.name = name
        self.sink = sink
        self.classifier = classifier
        self._task: asyncio.Task[None] | None = None

    def start(self) -> asyncio.Task[None]:
        if self._task is None:
            self._task = asyncio.create_task(self._read_loop(), name=f"node-host-{self.name}")
        return self._task

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def wait_closed(self) -> None:
        """Wait until the stream reaches EOF."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def dispatch(self, line: str) -> None:
        """Classify one line; forward it to the sink unless the classifier consumed it."""
        if self.classifier is not None and self.classifier(line):
            return
        self.sink(line, self.name)

    async def _read_loop(self) -> None:
        while True:
            try:
                raw = await self.stream.readline()
            except ValueError:
                # Line longer than the stream limit; the reader drops it and resyncs.
                logger.warning("Node host {} line exceeded the buffer limit and was skipped", self.name)
                continue
            if not raw:
                return
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            try:
                self.dispatch(line)
            except Exception:
                logger.exception("Node host {} line handler failed", self.name)
