"""Transport collaborators which put composed requests on the wire."""

import asyncio
import logging
from typing import Any, Protocol

import httpx

from rest_contract.request.content import HttpContent, HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
PROPERTIES_EXTENSION = "rest_contract.properties"


class Transport(Protocol):
    base_address: str | None

    async def send(
        self,
        method: str,
        uri: str,
        headers: list[tuple[str, str]],
        content: HttpContent | None,
        cancellation: asyncio.Event | None = None,
        properties: dict[str, Any] | None = None,
    ) -> HttpResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Sends requests with ``httpx.AsyncClient`` and streams the responses back.

    Pass ``client`` to reuse an existing client (or one built on
    ``httpx.MockTransport`` in tests); it is then left open on ``aclose()``.
    """

    def __init__(
        self,
        base_address: str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_address = base_address
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        method: str,
        uri: str,
        headers: list[tuple[str, str]],
        content: HttpContent | None,
        cancellation: asyncio.Event | None = None,
        properties: dict[str, Any] | None = None,
    ) -> HttpResponse:
        all_headers = list(headers)
        body = None
        if content is not None:
            all_headers.extend(content.headers)
            body = bytes(content.content) if content.is_buffered else content.aiter_bytes()

        request = self._client.build_request(method, uri, headers=all_headers, content=body)
        request.extensions[PROPERTIES_EXTENSION] = dict(properties or {})

        response = await self._client.send(request, stream=True)
        logger.debug("%s %s -> %s", method, uri, response.status_code)
        return HttpResponse(
            status_code=response.status_code,
            headers=response.headers.multi_items(),
            stream=response.aiter_bytes(),
            reason_phrase=response.reason_phrase,
            close=response.aclose,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
