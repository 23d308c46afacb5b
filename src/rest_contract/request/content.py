"""Wire-level request and response values exchanged with the transport."""

from __future__ import annotations

import re
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

CONTENT_HEADERS = {
    "allow",
    "content-disposition",
    "content-encoding",
    "content-language",
    "content-length",
    "content-location",
    "content-md5",
    "content-range",
    "content-type",
    "expires",
    "last-modified",
}

CHUNK_SIZE = 64 * 1024

_CHARSET_PATTERN = re.compile(r"charset=\"?([\w.:-]+)\"?", re.IGNORECASE)


def is_content_header(name: str) -> bool:
    """True for headers which describe the body rather than the envelope."""
    return name.strip().lower() in CONTENT_HEADERS


def header_values(headers: Iterable[tuple[str, str]], name: str) -> list[str]:
    wanted = name.lower()
    return [v for k, v in headers if k.lower() == wanted]


def join_header_values(values: Iterable[str]) -> str:
    return " ".join(values)


class HttpContent:
    """A request body together with the headers describing it.

    ``content`` may be bytes, a sync iterable of bytes, an async iterable of
    bytes, or a binary file-like object.
    """

    def __init__(self, content: Any = b"", headers: Iterable[tuple[str, str]] | None = None):
        self.content = content
        self.headers: list[tuple[str, str]] = list(headers or [])

    @classmethod
    def from_text(cls, text: str, media_type: str = "text/plain") -> HttpContent:
        return cls(text.encode("utf-8"), [("Content-Type", f"{media_type}; charset=utf-8")])

    @classmethod
    def empty(cls) -> HttpContent:
        return cls(b"")

    def header_values(self, name: str) -> list[str]:
        return header_values(self.headers, name)

    def replace_header(self, name: str, values: list[str]) -> None:
        wanted = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != wanted]
        self.headers.extend((name, v) for v in values)

    @property
    def is_buffered(self) -> bool:
        return isinstance(self.content, (bytes, bytearray))

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        content = self.content
        if isinstance(content, (bytes, bytearray)):
            if content:
                yield bytes(content)
        elif isinstance(content, AsyncIterable):
            async for chunk in content:
                yield chunk
        elif hasattr(content, "read"):
            while chunk := content.read(CHUNK_SIZE):
                yield chunk
        else:
            for chunk in content:
                yield chunk

    async def aread(self) -> bytes:
        if self.is_buffered:
            return bytes(self.content)
        self.content = b"".join([chunk async for chunk in self.aiter_bytes()])
        return self.content

    def __repr__(self) -> str:
        return f"<HttpContent headers={self.headers!r}>"


@dataclass
class ComposedRequest:
    """The request produced by the composition engine, ready for a transport."""

    method: str
    uri: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    content: HttpContent | None = None
    properties: dict[str, Any] = field(default_factory=dict)

    def header_values(self, name: str) -> list[str]:
        return header_values(self.headers, name)


class HttpResponse:
    """A response whose body has not necessarily been read yet."""

    def __init__(
        self,
        status_code: int,
        headers: Iterable[tuple[str, str]] | None = None,
        stream: AsyncIterable[bytes] | None = None,
        content: bytes | None = None,
        reason_phrase: str = "",
        request: ComposedRequest | None = None,
        close: Callable[[], Awaitable[None]] | None = None,
    ):
        self.status_code = status_code
        self.headers: list[tuple[str, str]] = list(headers or [])
        self.reason_phrase = reason_phrase
        self.request = request
        self._stream = stream
        self._content = content
        self._close = close
        self.is_closed = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_headers(self) -> list[tuple[str, str]]:
        return [(k, v) for k, v in self.headers if is_content_header(k)]

    @property
    def envelope_headers(self) -> list[tuple[str, str]]:
        return [(k, v) for k, v in self.headers if not is_content_header(k)]

    def header_values(self, name: str) -> list[str]:
        return header_values(self.headers, name)

    @property
    def encoding(self) -> str:
        for value in self.header_values("Content-Type"):
            match = _CHARSET_PATTERN.search(value)
            if match:
                return match.group(1)
        return "utf-8"

    @property
    def content(self) -> bytes:
        if self._content is None:
            raise RuntimeError("Response content has not been read; call aread() first")
        return self._content

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="replace")

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if self._content is not None:
            if self._content:
                yield self._content
            return
        if self._stream is not None:
            try:
                async for chunk in self._stream:
                    yield chunk
            finally:
                await self.aclose()

    async def aread(self) -> bytes:
        if self._content is None:
            self._content = b"".join([chunk async for chunk in self.aiter_bytes()])
            await self.aclose()
        return self._content

    async def atext(self) -> str:
        await self.aread()
        return self.text

    async def aclose(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        if self._close is not None:
            await self._close()

    def __repr__(self) -> str:
        return f"<HttpResponse [{self.status_code} {self.reason_phrase}]>"
