"""Tests for the worker output line reader."""

import asyncio

import pytest

from nodebridge.hosting.output import OutputMonitor
from nodebridge.hosting.readiness import PortNegotiator, ReadinessState


def _reader(data: bytes, limit: int = 2**16) -> asyncio.StreamReader:
    reader = asyncio.StreamReader(limit=limit)
    reader.feed_data(data)
    reader.feed_eof()
    return reader


@pytest.mark.asyncio
async def test_monitor_forwards_lines_the_classifier_does_not_claim() -> None:
    seen: list[tuple[str, str]] = []
    readiness = ReadinessState(1)
    reader = _reader(
        b"starting\r\n"
        b"[nodebridge.HttpHost:Listening on port 3000]\n"
        b"[nodebridge.HttpHost:Listening on port 3001]\n"
        b"ready for work\n"
    )
    monitor = OutputMonitor(reader, "stdout", lambda line, stream: seen.append((line, stream)), PortNegotiator(readiness))
    await monitor.start()
    assert readiness.port == 3000
    assert seen == [
        ("starting", "stdout"),
        ("[nodebridge.HttpHost:Listening on port 3001]", "stdout"),
        ("ready for work", "stdout"),
    ]


@pytest.mark.asyncio
async def test_monitor_delivers_partial_last_line_and_replaces_bad_bytes() -> None:
    seen: list[str] = []
    monitor = OutputMonitor(_reader(b"ok\n\xff tail"), "stderr", lambda line, stream: seen.append(line))
    await monitor.start()
    assert seen == ["ok", "\ufffd tail"]


@pytest.mark.asyncio
async def test_monitor_survives_overlong_lines() -> None:
    seen: list[str] = []
    reader = _reader(b"x" * 200 + b"\nafter\n", limit=64)
    monitor = OutputMonitor(reader, "stdout", lambda line, stream: seen.append(line))
    await monitor.start()
    assert seen[-1] == "after"


@pytest.mark.asyncio
async def test_monitor_keeps_reading_when_sink_raises() -> None:
    seen: list[str] = []

    def sink(line: str, stream: str) -> None:
        if line == "bad":
            raise RuntimeError("sink failed")
        seen.append(line)

    monitor = OutputMonitor(_reader(b"bad\ngood\n"), "stdout", sink)
    await monitor.start()
    assert seen == ["good"]


@pytest.mark.asyncio
async def test_stop_cancels_a_blocked_reader() -> None:
    reader = asyncio.StreamReader()
    monitor = OutputMonitor(reader, "stdout", lambda line, stream: None)
    monitor.start()
    await asyncio.sleep(0)
    await monitor.stop()
    assert monitor.done


@pytest.mark.asyncio
async def test_crlf_terminated_ready_line_is_recognised() -> None:
    readiness = ReadinessState(1)
    reader = _reader(b"[nodebridge.HttpHost:Listening on port 5050]\r\n")
    monitor = OutputMonitor(reader, "stdout", lambda line, stream: None, PortNegotiator(readiness))
    await monitor.start()
    assert readiness.port == 5050
