"""Typed response wrapper returned by operations declared with ``returns: response``."""

from collections.abc import Callable
from typing import Generic, TypeVar

from rest_contract.request.content import HttpResponse

T = TypeVar("T")

_UNSET = object()


class Response(Generic[T]):
    """Raw string content plus the response message; the typed body is parsed on demand."""

    def __init__(self, string_content: str | None, response_message: HttpResponse, content_deserializer: Callable[[], T]):
        self.string_content = string_content
        self.response_message = response_message
        self._content_deserializer = content_deserializer
        self._content = _UNSET

    @property
    def status_code(self) -> int:
        return self.response_message.status_code

    def get_content(self) -> T:
        if self._content is _UNSET:
            self._content = self._content_deserializer()
        return self._content

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
