"""Data models describing a contract surface.

Front ends (contract documents, OpenAPI import, hand-written models) all
produce these models; the validator and the descriptor builder consume them.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BodySerializationMethod(str, Enum):
    SERIALIZED = "serialized"
    URL_ENCODED = "url_encoded"


class QuerySerializationMethod(str, Enum):
    TO_STRING = "to_string"
    SERIALIZED = "serialized"


class PathSerializationMethod(str, Enum):
    TO_STRING = "to_string"
    SERIALIZED = "serialized"


class StatusCodePolicy(str, Enum):
    STRICT = "strict"
    ALLOW_ANY = "allow_any"


class ResultKind(str, Enum):
    """What an operation hands back to its caller."""

    NONE = "none"
    DESERIALIZED = "deserialized"
    RAW_STRING = "raw_string"
    STREAM = "stream"
    RESPONSE_MESSAGE = "response_message"
    RESPONSE = "response"


class SerializationMethods(BaseModel):
    """Overrides for a surface or an operation. ``None`` means unset."""

    body: BodySerializationMethod | None = None
    query: QuerySerializationMethod | None = None
    path: PathSerializationMethod | None = None


class StatusCodePolicyDeclaration(BaseModel):
    policy: StatusCodePolicy = StatusCodePolicy.ALLOW_ANY
    declared_on: str | None = None  # surface name; None means the surface itself


class HeaderDeclaration(BaseModel):
    """A static header on a surface or an operation."""

    name: str
    value: str | None = None


class RequestDeclaration(BaseModel):
    """The request-kind binding of an operation: verb plus path template."""

    method: str
    path: str | None = None

    @field_validator("method")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


# Binding roles

class HeaderBinding(BaseModel):
    role: Literal["header"] = "header"
    name: str
    value: str | None = None


class PathBinding(BaseModel):
    role: Literal["path"] = "path"
    name: str | None = None
    serialization: PathSerializationMethod | None = None
    format: str | None = None
    url_encode: bool = True


class QueryBinding(BaseModel):
    role: Literal["query"] = "query"
    name: str | None = None
    serialization: QuerySerializationMethod | None = None
    format: str | None = None


class RawQueryBinding(BaseModel):
    role: Literal["raw_query"] = "raw_query"


class QueryMapBinding(BaseModel):
    role: Literal["query_map"] = "query_map"
    serialization: QuerySerializationMethod | None = None


class BodyBinding(BaseModel):
    role: Literal["body"] = "body"
    serialization: BodySerializationMethod | None = None


class CancellationBinding(BaseModel):
    role: Literal["cancellation"] = "cancellation"


class RequestPropertyBinding(BaseModel):
    role: Literal["request_property"] = "request_property"
    key: str | None = None


Binding = Annotated[
    Union[
        HeaderBinding,
        PathBinding,
        QueryBinding,
        RawQueryBinding,
        QueryMapBinding,
        BodyBinding,
        CancellationBinding,
        RequestPropertyBinding,
    ],
    Field(discriminator="role"),
]


class _Member(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    bindings: list[Binding] = []
    annotation: Any = None  # python type or a document type name such as "map"

    def binding(self, binding_type: type) -> Any:
        """First binding of the given type, or None."""
        for b in self.bindings:
            if isinstance(b, binding_type):
                return b
        return None

    def has(self, binding_type: type) -> bool:
        return self.binding(binding_type) is not None

    @property
    def header_name(self) -> str | None:
        b = self.binding(HeaderBinding)
        return b.name if b else None

    @property
    def path_name(self) -> str | None:
        b = self.binding(PathBinding)
        if b is None:
            return None
        return b.name or self.name

    @property
    def query_name(self) -> str | None:
        b = self.binding(QueryBinding)
        if b is None:
            return None
        return b.name or self.name

    @property
    def request_property_key(self) -> str | None:
        b = self.binding(RequestPropertyBinding)
        if b is None:
            return None
        return b.key or self.name


class Parameter(_Member):
    """One argument of an operation. No binding means an implicit query parameter."""

    default: Any = None
    by_reference: bool = False  # out/inout parameters from front ends that have them


class Property(_Member):
    """A settable member shared by every operation of the surface."""

    readable: bool = True
    writable: bool = True
    nullable: bool = True
    is_requester: bool = False  # read-only accessor exposing the requester


class Operation(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    requests: list[RequestDeclaration] = []
    parameters: list[Parameter] = []
    headers: list[HeaderDeclaration] = []
    status_code_policy: StatusCodePolicy | None = None
    serialization: SerializationMethods | None = None
    is_dispose: bool = False
    returns: ResultKind = ResultKind.NONE
    result_type: Any = None
    awaitable: bool = True

    @property
    def request(self) -> RequestDeclaration | None:
        """The request-kind binding, when there is exactly one."""
        return self.requests[0] if len(self.requests) == 1 else None

    def get_parameter(self, name: str) -> Parameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None


class ContractSurface(BaseModel):
    """The declared shape of a remote API."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    operations: list[Operation] = []
    properties: list[Property] = []
    headers: list[HeaderDeclaration] = []
    base_address: str | None = None
    base_path: str | None = None
    status_code_policies: list[StatusCodePolicyDeclaration] = []
    serialization: SerializationMethods | None = None
    events: list[str] = []
    accessible: bool = True

    def get_operation(self, name: str) -> Operation | None:
        for op in self.operations:
            if op.name == name:
                return op
        return None

    def get_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    @property
    def status_code_policy(self) -> StatusCodePolicy | None:
        """Policy declared on this surface itself, ignoring inherited declarations."""
        for decl in self.status_code_policies:
            if decl.declared_on in (None, self.name):
                return decl.policy
        return None
