"""The per-call snapshot handed to the composition engine."""

import asyncio
from typing import Any

from pydantic import BaseModel, ConfigDict

from rest_contract.contract.base import (
    BodySerializationMethod,
    Operation,
    PathSerializationMethod,
    QuerySerializationMethod,
    ResultKind,
    StatusCodePolicy,
)


class _Value(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class HeaderValue(_Value):
    name: str
    value: str | None = None  # None removes the header from lower layers


class PathValue(_Value):
    name: str
    value: Any = None
    serialization: PathSerializationMethod = PathSerializationMethod.TO_STRING
    format: str | None = None
    url_encode: bool = True


class QueryValue(_Value):
    name: str
    value: Any = None
    serialization: QuerySerializationMethod = QuerySerializationMethod.TO_STRING
    format: str | None = None


class QueryMapValue(_Value):
    name: str  # argument name, for error messages
    value: Any = None
    serialization: QuerySerializationMethod = QuerySerializationMethod.TO_STRING


class BodyValue(_Value):
    name: str
    value: Any = None
    serialization: BodySerializationMethod = BodySerializationMethod.SERIALIZED


class RequestPropertyValue(_Value):
    key: str
    value: Any = None


class RequestDescriptor(_Value):
    """Everything one call contributes to a request.

    Header layers are listed in increasing precedence: surface, property,
    operation, parameter. Serialization methods are already resolved.
    """

    method: str
    path: str = ""
    base_address: str | None = None
    base_path: str | None = None
    status_code_policy: StatusCodePolicy = StatusCodePolicy.STRICT

    surface_headers: list[HeaderValue] = []
    property_headers: list[HeaderValue] = []
    operation_headers: list[HeaderValue] = []
    parameter_headers: list[HeaderValue] = []

    path_properties: list[PathValue] = []
    path_parameters: list[PathValue] = []

    query_properties: list[QueryValue] = []
    query_parameters: list[QueryValue] = []
    query_maps: list[QueryMapValue] = []
    raw_query: list[Any] = []

    body: BodyValue | None = None

    property_request_properties: list[RequestPropertyValue] = []
    parameter_request_properties: list[RequestPropertyValue] = []

    cancellation: asyncio.Event | None = None
    operation: Operation | None = None
    returns: ResultKind = ResultKind.NONE
    result_type: Any = None

    @property
    def header_layers(self) -> tuple[list[HeaderValue], ...]:
        return (self.surface_headers, self.property_headers, self.operation_headers, self.parameter_headers)

    @property
    def request_properties(self) -> dict[str, Any]:
        """Request metadata; parameter values win over property values for a key."""
        merged = {p.key: p.value for p in self.property_request_properties}
        merged.update((p.key, p.value) for p in self.parameter_request_properties)
        return merged
