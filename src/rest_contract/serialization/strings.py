"""Path serializer which writes enum members by their display value."""

import enum
from functools import lru_cache
from typing import Any

from rest_contract.serialization.json import SerializerInfo


@lru_cache(maxsize=512)
def enum_display_value(member: enum.Enum) -> str:
    """The string a member stands for: a string value as is, otherwise the member name."""
    if isinstance(member.value, str):
        return member.value
    return member.name


class StringEnumRequestPathParamSerializer:
    """Use with SERIALIZED path bindings to put enums into the path by display value.

    ``Status.IN_PROGRESS = "in-progress"`` becomes ``in-progress``;
    ``Level.HIGH = 3`` becomes ``HIGH``. Other values are formatted with
    ``info.format`` when one is given, or converted with ``str()``.
    """

    def serialize_path_param(self, name: str, value: Any, info: SerializerInfo) -> tuple[str, str]:
        if value is None:
            return name, ""
        if isinstance(value, enum.Enum):
            return name, enum_display_value(value)
        if info.format:
            return name, format(value, info.format)
        return name, str(value)
