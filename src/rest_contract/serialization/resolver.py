"""Resolves serialization overrides: value -> operation -> surface -> default."""

from rest_contract.contract.base import (
    BodySerializationMethod,
    PathSerializationMethod,
    QuerySerializationMethod,
    SerializationMethods,
)

DEFAULT_BODY = BodySerializationMethod.SERIALIZED
DEFAULT_QUERY = QuerySerializationMethod.TO_STRING
DEFAULT_PATH = PathSerializationMethod.TO_STRING


def resolve(value, operation, surface, default):
    """Return the first override which is set, falling back to ``default``."""
    for candidate in (value, operation, surface):
        if candidate is not None:
            return candidate
    return default


class ResolvedSerializationMethods:
    """Binds the surface and operation overrides so only the value level varies."""

    def __init__(self, surface: SerializationMethods | None = None, operation: SerializationMethods | None = None):
        self.surface = surface or SerializationMethods()
        self.operation = operation or SerializationMethods()

    def resolve_body(self, value: BodySerializationMethod | None = None) -> BodySerializationMethod:
        return resolve(value, self.operation.body, self.surface.body, DEFAULT_BODY)

    def resolve_query(self, value: QuerySerializationMethod | None = None) -> QuerySerializationMethod:
        return resolve(value, self.operation.query, self.surface.query, DEFAULT_QUERY)

    def resolve_path(self, value: PathSerializationMethod | None = None) -> PathSerializationMethod:
        return resolve(value, self.operation.path, self.surface.path, DEFAULT_PATH)
