"""Pluggable value serializers and their JSON implementations.

The engine only depends on the protocols below; the JSON classes are the
defaults wired in by ``RestClient``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic_core import from_json, to_json

from rest_contract.request.content import HttpContent

JSON_MEDIA_TYPE = "application/json"


class SerializerInfo(BaseModel):
    """Context handed to request serializers."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    operation: Any = None  # the declaring Operation, when known
    format: str | None = None


class DeserializerInfo(BaseModel):
    """Context handed to the response deserializer."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    operation: Any = None
    result_type: Any = None


class RequestBodySerializer(Protocol):
    def serialize_body(self, value: Any, info: SerializerInfo) -> HttpContent: ...


class RequestQueryParamSerializer(Protocol):
    def serialize_query_param(self, name: str, value: Any, info: SerializerInfo) -> list[tuple[str, str]]: ...

    def serialize_query_collection_param(
        self, name: str, values: list[Any], info: SerializerInfo
    ) -> list[tuple[str, str]]: ...


class RequestPathParamSerializer(Protocol):
    def serialize_path_param(self, name: str, value: Any, info: SerializerInfo) -> tuple[str, str]: ...


class ResponseDeserializer(Protocol):
    def deserialize(self, content: str | None, response: Any, info: DeserializerInfo) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def dumps(value: Any) -> str:
    return to_json(value).decode("utf-8")


class JsonRequestBodySerializer:
    """Serializes bodies (dicts, lists, pydantic models, ...) to UTF-8 JSON."""

    def __init__(self, media_type: str = JSON_MEDIA_TYPE):
        self.media_type = media_type

    def serialize_body(self, value: Any, info: SerializerInfo) -> HttpContent:
        return HttpContent(to_json(value), [("Content-Type", f"{self.media_type}; charset=utf-8")])


class JsonRequestQueryParamSerializer:
    """Renders each value as JSON text; ``None`` becomes ``null``."""

    def serialize_query_param(self, name: str, value: Any, info: SerializerInfo) -> list[tuple[str, str]]:
        return [(name, dumps(value))]

    def serialize_query_collection_param(
        self, name: str, values: list[Any], info: SerializerInfo
    ) -> list[tuple[str, str]]:
        return [(name, dumps(v)) for v in values]


class JsonRequestPathParamSerializer:
    def serialize_path_param(self, name: str, value: Any, info: SerializerInfo) -> tuple[str, str]:
        return name, dumps(value)


class JsonResponseDeserializer:
    """Parses JSON bodies, validating against ``info.result_type`` when one is given."""

    def deserialize(self, content: str | None, response: Any, info: DeserializerInfo) -> Any:
        if content is None or not content.strip():
            return None
        if info.result_type in (None, Any):
            return from_json(content)
        return _adapter(info.result_type).validate_json(content)
