"""Wire models shared by the supervisor and the invocation channel."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


@dataclass(frozen=True, slots=True)
class InvocationRequest:
    """One call into the Node host: module, export (None = default export), args."""

    module_name: str
    exported_function_name: str | None = None
    args: tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))


class ContentType(str, Enum):
    """Response media types the Node host may answer with."""

    TEXT = "text/plain"
    JSON = "application/json"
    OCTET_STREAM = "application/octet-stream"

    @classmethod
    def parse(cls, header: str | None) -> ContentType | None:
        """Map a Content-Type header (parameters ignored) to a known kind, or None."""
        media_type = (header or "").split(";", 1)[0].strip().lower()
        for kind in cls:
            if kind.value == media_type:
                return kind
        return None


class BinaryStream:
    """Live body of an application/octet-stream response. The caller must close it."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    async def read(self) -> bytes:
        """Read the remaining body and close the stream."""
        try:
            return await self._response.aread()
        finally:
            await self.aclose()

    async def iter_bytes(self, chunk_size: int | None = None) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes(chunk_size):
            yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> BinaryStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
