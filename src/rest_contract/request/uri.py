"""URI composition: bases, path placeholders and the query string."""

import enum
import re
from collections.abc import Iterable, Mapping
from typing import Any, Protocol
from urllib.parse import quote, quote_plus

import httpx
from pydantic import BaseModel, ConfigDict

from rest_contract.contract.base import PathSerializationMethod, QuerySerializationMethod
from rest_contract.contract.validator import PLACEHOLDER_PATTERN, is_absolute_uri
from rest_contract.errors import InvalidUriError, UnknownSerializationMethodError
from rest_contract.request.descriptor import PathValue, QueryValue, RequestDescriptor
from rest_contract.serialization.json import (
    RequestPathParamSerializer,
    RequestQueryParamSerializer,
    SerializerInfo,
)

_ORIGIN_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*://[^/?#]*)(.*)$", re.DOTALL)

# Characters allowed to stay literal in a path; '%' keeps existing escapes intact.
PATH_SAFE = "/%:@!$&'()*+,;=~-._"
QUERY_SAFE = PATH_SAFE + "?"


def join_segments(base: str, segment: str | None) -> str:
    """Append ``segment`` to ``base`` with exactly one slash between them."""
    if not segment:
        return base
    return base.rstrip("/") + "/" + segment.lstrip("/")


def to_text(value: Any, fmt: str | None = None) -> str:
    """String conversion used for path, query, header and form values.

    Enum members are rendered by their value, so ``Color.RED = "red"``
    goes on the wire as ``red``.
    """
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        value = value.value
    if fmt:
        return format(value, fmt)
    return value if isinstance(value, str) else str(value)


def is_collection(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray, Mapping))


def combine_bases(path: str, base_address: str | None, base_path: str | None) -> str:
    """Pick the base and append the base path and per-call path to it.

    An absolute per-call path replaces everything. An absolute base path
    replaces the base address. A per-call path starting with '/' is appended
    to the base address and skips the base path.
    """
    if is_absolute_uri(path):
        return path
    if base_path and is_absolute_uri(base_path):
        base_address, base_path = base_path, None
    if not base_address:
        raise InvalidUriError(
            f"Unable to construct a URI for path '{path}': no base address is configured "
            f"and the path is not absolute"
        )
    if path.startswith("/"):
        return join_segments(base_address, path)
    return join_segments(join_segments(base_address, base_path), path)


def escape_existing_query(query: str) -> str:
    """Keep a template's query string as written, escaping only what a URI cannot carry."""
    return quote(query.replace(" ", "+"), safe=QUERY_SAFE)


class QueryStringInfo(BaseModel):
    """The ordered inputs of one request's query string.

    Pairs are already converted to text but not yet escaped.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    initial_query: str = ""  # from the path template, already escaped
    query_properties: list[tuple[str, str]] = []
    query_parameters: list[tuple[str, str]] = []
    query_map_entries: list[tuple[str, str]] = []
    raw_query: list[str] = []
    descriptor: Any = None


class QueryStringBuilder(Protocol):
    def build_query_string(self, info: QueryStringInfo) -> str:
        """Return the escaped query string without the leading '?'."""
        ...


class DefaultQueryStringBuilder:
    """Existing query, properties, parameters, map entries, then raw fragments."""

    def build_query_string(self, info: QueryStringInfo) -> str:
        parts = [info.initial_query] if info.initial_query else []
        pairs = info.query_properties + info.query_parameters + info.query_map_entries
        parts.extend(f"{quote_plus(k)}={quote_plus(v)}" for k, v in pairs)
        # raw fragments go in verbatim
        parts.extend(info.raw_query)
        return "&".join(parts)


class UriBuilder:
    """Composes the final request URI for a descriptor."""

    def __init__(
        self,
        path_serializer: RequestPathParamSerializer,
        query_serializer: RequestQueryParamSerializer,
        query_string_builder: QueryStringBuilder | None = None,
    ):
        self.path_serializer = path_serializer
        self.query_serializer = query_serializer
        self.query_string_builder = query_string_builder or DefaultQueryStringBuilder()

    def build(self, descriptor: RequestDescriptor, transport_base_address: str | None = None) -> str:
        base_address = descriptor.base_address or transport_base_address
        combined = combine_bases(descriptor.path, base_address, descriptor.base_path)
        combined = self.substitute_placeholders(combined, descriptor)

        match = _ORIGIN_PATTERN.match(combined)
        if match is None:
            raise InvalidUriError(f"Unable to construct a URI for path '{descriptor.path}': '{combined}' is not absolute")
        origin, rest = match.groups()
        rest, _, fragment = rest.partition("#")
        path, _, existing_query = rest.partition("?")

        query = self.query_string_builder.build_query_string(self.query_info(descriptor, existing_query))

        uri = origin + quote(path or "/", safe=PATH_SAFE)
        if query:
            uri += "?" + query
        if fragment:
            uri += "#" + fragment

        try:
            httpx.URL(uri)
        except httpx.InvalidURL as exc:
            raise InvalidUriError(f"Unable to construct a valid URI for path '{descriptor.path}': {exc}") from exc
        return uri

    # Path

    def substitute_placeholders(self, template: str, descriptor: RequestDescriptor) -> str:
        values: dict[str, str] = {}
        for item in descriptor.path_parameters:
            values.setdefault(item.name, self._path_text(item, descriptor))
        for item in descriptor.path_properties:
            values.setdefault(item.name, self._path_text(item, descriptor))
        if not values:
            return template

        def replace(match: re.Match) -> str:
            return values.get(match.group(1), match.group(0))

        return re.sub(PLACEHOLDER_PATTERN, replace, template)

    def _path_text(self, item: PathValue, descriptor: RequestDescriptor) -> str:
        if item.serialization == PathSerializationMethod.TO_STRING:
            text = to_text(item.value, item.format)
        elif item.serialization == PathSerializationMethod.SERIALIZED:
            info = SerializerInfo(operation=descriptor.operation, format=item.format)
            _, text = self.path_serializer.serialize_path_param(item.name, item.value, info)
            text = text or ""
        else:
            raise UnknownSerializationMethodError(f"Unknown path serialization method: {item.serialization!r}")
        return quote(text, safe="") if item.url_encode else text

    # Query

    def query_info(self, descriptor: RequestDescriptor, existing_query: str = "") -> QueryStringInfo:
        properties: list[tuple[str, str]] = []
        for item in descriptor.query_properties:
            properties.extend(self.query_pairs(item, descriptor))
        parameters: list[tuple[str, str]] = []
        for item in descriptor.query_parameters:
            parameters.extend(self.query_pairs(item, descriptor))
        map_entries: list[tuple[str, str]] = []
        for query_map in descriptor.query_maps:
            if query_map.value is None:
                continue
            for key, value in _map_items(query_map.name, query_map.value):
                item = QueryValue(name=to_text(key), value=value, serialization=query_map.serialization)
                map_entries.extend(self.query_pairs(item, descriptor))

        return QueryStringInfo(
            initial_query=escape_existing_query(existing_query),
            query_properties=[(k, v if v is not None else "") for k, v in properties],
            query_parameters=[(k, v if v is not None else "") for k, v in parameters],
            query_map_entries=[(k, v if v is not None else "") for k, v in map_entries],
            raw_query=[str(raw) for raw in descriptor.raw_query if raw is not None and str(raw)],
            descriptor=descriptor,
        )

    def query_pairs(self, item: QueryValue, descriptor: RequestDescriptor) -> list[tuple[str, str]]:
        if item.serialization == QuerySerializationMethod.TO_STRING:
            if item.value is None:
                return []
            if is_collection(item.value):
                return [(item.name, to_text(v, item.format)) for v in item.value if v is not None]
            return [(item.name, to_text(item.value, item.format))]
        if item.serialization == QuerySerializationMethod.SERIALIZED:
            info = SerializerInfo(operation=descriptor.operation, format=item.format)
            if is_collection(item.value):
                return list(self.query_serializer.serialize_query_collection_param(item.name, list(item.value), info))
            return list(self.query_serializer.serialize_query_param(item.name, item.value, info))
        raise UnknownSerializationMethodError(f"Unknown query serialization method: {item.serialization!r}")


def _map_items(argument: str, value: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return list(value.items())
    if is_collection(value):
        items = list(value)
        if all(isinstance(i, tuple) and len(i) == 2 for i in items):
            return items
    raise TypeError(f"Query map argument '{argument}' of type {type(value).__name__} is not a mapping")
