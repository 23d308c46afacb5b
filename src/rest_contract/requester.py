"""The request composition engine.

``Requester`` turns a RequestDescriptor into a ComposedRequest, sends it
through the transport and interprets the response. It keeps no per-call
state, so one instance can serve concurrent calls.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from rest_contract.contract.base import ResultKind, StatusCodePolicy
from rest_contract.errors import ApiError, RestContractError
from rest_contract.request.body import build_body
from rest_contract.request.content import ComposedRequest, HttpResponse
from rest_contract.request.descriptor import RequestDescriptor
from rest_contract.request.headers import compose_headers
from rest_contract.request.uri import QueryStringBuilder, UriBuilder
from rest_contract.response import Response
from rest_contract.serialization.json import (
    DeserializerInfo,
    JsonRequestBodySerializer,
    JsonRequestPathParamSerializer,
    JsonRequestQueryParamSerializer,
    JsonResponseDeserializer,
    RequestBodySerializer,
    RequestPathParamSerializer,
    RequestQueryParamSerializer,
    ResponseDeserializer,
)
from rest_contract.transport import Transport

logger = logging.getLogger(__name__)

RequestModifier = Callable[[ComposedRequest], Awaitable[None]]


def _consume_outcome(task: asyncio.Task) -> None:
    # retrieve the result of an abandoned send so a late failure is not reported as unhandled
    if not task.cancelled():
        task.exception()


class Requester:
    def __init__(
        self,
        transport: Transport,
        body_serializer: RequestBodySerializer | None = None,
        query_serializer: RequestQueryParamSerializer | None = None,
        path_serializer: RequestPathParamSerializer | None = None,
        response_deserializer: ResponseDeserializer | None = None,
        request_modifier: RequestModifier | None = None,
        query_string_builder: QueryStringBuilder | None = None,
    ):
        self.transport = transport
        self.body_serializer = body_serializer or JsonRequestBodySerializer()
        self.query_serializer = query_serializer or JsonRequestQueryParamSerializer()
        self.path_serializer = path_serializer or JsonRequestPathParamSerializer()
        self.response_deserializer = response_deserializer or JsonResponseDeserializer()
        self.request_modifier = request_modifier
        self.query_string_builder = query_string_builder

    # Composition

    def compose(self, descriptor: RequestDescriptor) -> ComposedRequest:
        """Build URI, headers and body without touching the network."""
        uri = UriBuilder(self.path_serializer, self.query_serializer, self.query_string_builder).build(
            descriptor, getattr(self.transport, "base_address", None)
        )
        headers = compose_headers(list(descriptor.header_layers))
        content = build_body(descriptor.body, self.body_serializer, descriptor.operation)
        content = headers.apply_to(content)
        return ComposedRequest(
            method=descriptor.method,
            uri=uri,
            headers=headers.envelope,
            content=content,
            properties=descriptor.request_properties,
        )

    # Dispatch

    async def send(self, descriptor: RequestDescriptor) -> HttpResponse:
        """Compose and send, applying the status-code policy to the response."""
        request = self.compose(descriptor)
        if self.request_modifier is not None:
            await self.request_modifier(request)

        logger.debug("Sending %s %s", request.method, request.uri)
        response = await self._dispatch(request, descriptor.cancellation)
        response.request = request
        logger.debug("Received %s for %s %s", response.status_code, request.method, request.uri)

        if descriptor.status_code_policy == StatusCodePolicy.STRICT and not response.is_success:
            raw_body = await response.atext()
            raise ApiError(
                method=request.method,
                uri=request.uri,
                status_code=response.status_code,
                reason_phrase=response.reason_phrase,
                headers=response.envelope_headers,
                content_headers=response.content_headers,
                raw_body=raw_body,
                deserializer=self._error_deserializer(descriptor, response),
            )
        return response

    async def _dispatch(self, request: ComposedRequest, cancellation: asyncio.Event | None) -> HttpResponse:
        sending = self.transport.send(
            request.method,
            request.uri,
            request.headers,
            request.content,
            cancellation=cancellation,
            properties=request.properties,
        )
        if cancellation is None:
            return await sending
        if cancellation.is_set():
            sending.close()
            raise asyncio.CancelledError(f"{request.method} {request.uri} was cancelled before it was sent")

        send_task = asyncio.ensure_future(sending)
        cancel_task = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({send_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            send_task.cancel()
            send_task.add_done_callback(_consume_outcome)
            raise
        finally:
            cancel_task.cancel()

        if send_task in done:
            return send_task.result()
        # stop waiting; the transport may or may not abort the in-flight request
        send_task.cancel()
        send_task.add_done_callback(_consume_outcome)
        logger.debug("Cancelled %s %s", request.method, request.uri)
        raise asyncio.CancelledError(f"{request.method} {request.uri} was cancelled")

    # Results

    async def request(self, descriptor: RequestDescriptor) -> Any:
        """Send the request and shape the result according to ``descriptor.returns``."""
        response = await self.send(descriptor)
        returns = descriptor.returns

        if returns == ResultKind.NONE:
            await response.aclose()
            return None
        if returns == ResultKind.RESPONSE_MESSAGE:
            return response
        if returns == ResultKind.STREAM:
            return response.aiter_bytes()
        if returns == ResultKind.RAW_STRING:
            return await response.atext()
        if returns == ResultKind.DESERIALIZED:
            text = await response.atext()
            return self.deserialize(text, response, descriptor, descriptor.result_type)
        if returns == ResultKind.RESPONSE:
            text = await response.atext()
            return Response(text, response, lambda: self.deserialize(text, response, descriptor, descriptor.result_type))
        raise RestContractError(f"Unknown result kind: {returns!r}")

    def deserialize(self, content: str | None, response: HttpResponse, descriptor: RequestDescriptor, result_type: Any) -> Any:
        info = DeserializerInfo(operation=descriptor.operation, result_type=result_type)
        return self.response_deserializer.deserialize(content, response, info)

    def _error_deserializer(self, descriptor: RequestDescriptor, response: HttpResponse):
        def deserialize(raw_body: str | None, result_type: Any) -> Any:
            return self.deserialize(raw_body, response, descriptor, result_type)

        return deserialize

    async def aclose(self) -> None:
        await self.transport.aclose()
