"""Request body construction."""

from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any
from urllib.parse import quote_plus

from rest_contract.contract.base import BodySerializationMethod
from rest_contract.errors import FormEncodingError, UnknownSerializationMethodError
from rest_contract.request.content import HttpContent
from rest_contract.request.descriptor import BodyValue
from rest_contract.request.uri import to_text
from rest_contract.serialization.json import RequestBodySerializer, SerializerInfo

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


def is_passthrough(value: Any) -> bool:
    """Values which already are wire payloads and skip serialization."""
    return (
        isinstance(value, (HttpContent, bytes, bytearray, str, AsyncIterable))
        or hasattr(value, "read")
    )


def passthrough_content(value: Any) -> HttpContent:
    if isinstance(value, HttpContent):
        return value
    if isinstance(value, str):
        return HttpContent.from_text(value)
    if isinstance(value, (bytes, bytearray)):
        return HttpContent(bytes(value))
    return HttpContent(value)


def form_pairs(argument: str, value: Any) -> list[tuple[str, str]]:
    """Flatten a map into form fields, expanding iterable values into repeated fields."""
    if isinstance(value, Mapping):
        entries = list(value.items())
    elif isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray)):
        entries = list(value)
        if not all(isinstance(e, tuple) and len(e) == 2 for e in entries):
            raise FormEncodingError(argument, type(value))
    else:
        raise FormEncodingError(argument, type(value))

    pairs = []
    for key, item in entries:
        if isinstance(item, Iterable) and not isinstance(item, (str, bytes, bytearray, Mapping)):
            pairs.extend((to_text(key), to_text(v)) for v in item if v is not None)
        elif item is not None:
            pairs.append((to_text(key), to_text(item)))
    return pairs


def form_encode(argument: str, value: Any) -> HttpContent:
    encoded = "&".join(f"{quote_plus(k)}={quote_plus(v)}" for k, v in form_pairs(argument, value))
    return HttpContent(encoded.encode("ascii"), [("Content-Type", FORM_MEDIA_TYPE)])


def build_body(body: BodyValue | None, serializer: RequestBodySerializer, operation: Any = None) -> HttpContent | None:
    if body is None or body.value is None:
        return None
    if is_passthrough(body.value):
        return passthrough_content(body.value)
    if body.serialization == BodySerializationMethod.SERIALIZED:
        return serializer.serialize_body(body.value, SerializerInfo(operation=operation))
    if body.serialization == BodySerializationMethod.URL_ENCODED:
        return form_encode(body.name, body.value)
    raise UnknownSerializationMethodError(f"Unknown body serialization method: {body.serialization!r}")
