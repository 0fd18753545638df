"""End-to-end tests of the bundled HTTP entry point under a real Node.js runtime."""

import pytest

from nodebridge.config.schema import BridgeConfig, InvocationConfig, WorkerConfig
from nodebridge.hosting.bridge import NodeBridge
from nodebridge.hosting.protocol import BinaryStream
from nodebridge.utils.exceptions import RemoteInvocationError

pytestmark = [pytest.mark.requires_node, pytest.mark.asyncio]

GREET_JS = """
module.exports = function (callback, name) {
    callback(null, 'Hello, ' + name + '!');
};
module.exports.add = async function (callback, a, b) {
    return { sum: a + b };
};
module.exports.bytes = function (callback) {
    callback(null, Buffer.from([1, 2, 3]));
};
module.exports.broken = function () {
    throw new Error('kaboom');
};
"""


@pytest.fixture
def node_project(tmp_path):
    (tmp_path / "greet.js").write_text(GREET_JS, encoding="utf-8")
    return tmp_path


def _bridge(project) -> NodeBridge:
    return NodeBridge(
        BridgeConfig(
            worker=WorkerConfig(project_path=str(project), startup_timeout_seconds=20),
            invocation=InvocationConfig(timeout_seconds=20),
        )
    )


async def test_default_export_returns_text(node_project) -> None:
    async with _bridge(node_project) as bridge:
        assert await bridge.invoke("./greet", "Ada", result_type=str) == "Hello, Ada!"


async def test_named_async_export_returns_json(node_project) -> None:
    async with _bridge(node_project) as bridge:
        assert await bridge.invoke_export("./greet", "add", 2, 3) == {"sum": 5}


async def test_buffer_result_is_a_binary_stream(node_project) -> None:
    async with _bridge(node_project) as bridge:
        stream = await bridge.invoke_export("./greet", "bytes", result_type=BinaryStream)
        assert await stream.read() == b"\x01\x02\x03"


async def test_thrown_error_is_reported(node_project) -> None:
    async with _bridge(node_project) as bridge:
        with pytest.raises(RemoteInvocationError) as exc_info:
            await bridge.invoke_export("./greet", "broken")
        assert "kaboom" in exc_info.value.body
        assert bridge.supervisor.stats.retries == 0
