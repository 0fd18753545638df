"""HTTP request/response exchange with a ready Node host."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from nodebridge.hosting.protocol import BinaryStream, ContentType, InvocationRequest
from nodebridge.hosting.serialization import decode_json, decode_text, encode_request
from nodebridge.utils.exceptions import (
    InvocationTimeoutError,
    RemoteInvocationError,
    TypeMismatchError,
    UnexpectedContentTypeError,
    WorkerTransportError,
)


class InvocationChannel:
    """
    Sends one InvocationRequest per HTTP POST and decodes the response.

    The decoder is closed over the three known content types; text and JSON
    bodies are buffered fully, octet-stream bodies are handed to the caller
    still open.
    """

    def __init__(
        self,
        host: str = "localhost",
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.host = host
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
                trust_env=False,
            )
        return self._client

    @property
    def closed(self) -> bool:
        return self._client is not None and self._client.is_closed

    def endpoint(self, port: int) -> str:
        return f"http://{self.host}:{port}/"

    async def send(
        self,
        request: InvocationRequest,
        port: int,
        result_type: Any = Any,
        *,
        generation: int | None = None,
    ) -> Any:
        body = encode_request(request)
        client = self._get_client()
        http_request = client.build_request(
            "POST",
            self.endpoint(port),
            content=body,
            headers={"Content-Type": "application/json; charset=utf-8"},
        )
        try:
            response = await client.send(http_request, stream=True)
        except httpx.ConnectTimeout as exc:
            raise WorkerTransportError(f"Connecting to Node host timed out: {exc}", port, generation) from exc
        except httpx.TimeoutException as exc:
            raise InvocationTimeoutError(request.module_name, self.timeout_seconds) from exc
        except httpx.TransportError as exc:
            raise WorkerTransportError(
                f"Node host connection failed: {exc.__class__.__name__}: {exc}", port, generation
            ) from exc

        handed_off = False
        try:
            result = await self._decode(request, response, result_type, port, generation)
            handed_off = isinstance(result, BinaryStream)
            return result
        finally:
            if not handed_off:
                await response.aclose()

    async def _read_body(
        self, request: InvocationRequest, response: httpx.Response, port: int, generation: int | None
    ) -> str:
        try:
            await response.aread()
        except httpx.TimeoutException as exc:
            raise InvocationTimeoutError(request.module_name, self.timeout_seconds) from exc
        except httpx.TransportError as exc:
            raise WorkerTransportError(
                f"Node host closed the connection mid-response: {exc.__class__.__name__}: {exc}", port, generation
            ) from exc
        return response.text

    async def _decode(
        self,
        request: InvocationRequest,
        response: httpx.Response,
        result_type: Any,
        port: int,
        generation: int | None,
    ) -> Any:
        if not response.is_success:
            text = await self._read_body(request, response, port, generation)
            logger.debug("Node module {} failed with status {}", request.module_name, response.status_code)
            raise RemoteInvocationError(response.status_code, text)

        header = response.headers.get("content-type", "")
        kind = ContentType.parse(header)
        if kind is ContentType.TEXT:
            if result_type is not str:
                raise TypeMismatchError(kind.value, result_type, "request the result as str")
            return decode_text(await self._read_body(request, response, port, generation), result_type)
        if kind is ContentType.JSON:
            return decode_json(await self._read_body(request, response, port, generation), result_type)
        if kind is ContentType.OCTET_STREAM:
            if result_type is not BinaryStream:
                raise TypeMismatchError(kind.value, result_type, "request the result as BinaryStream")
            return BinaryStream(response)
        raise UnexpectedContentTypeError(header.split(";", 1)[0].strip())

    async def aclose(self) -> None:
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None
