import asyncio

import pytest

from rest_contract.contract.base import (
    ContractSurface,
    Operation,
    Parameter,
    RequestDeclaration,
)
from rest_contract.request.content import HttpResponse


class FakeTransport:
    """Records every send and answers with a canned response."""

    def __init__(self, status_code=200, body=b"", headers=None, base_address="http://api.example.com", delay=None):
        self.base_address = base_address
        self.status_code = status_code
        self.body = body
        self.headers = headers or [("Content-Type", "application/json; charset=utf-8")]
        self.delay = delay
        self.sent = []
        self.closed = False

    async def send(self, method, uri, headers, content, cancellation=None, properties=None):
        body = await content.aread() if content is not None else None
        self.sent.append({
            "method": method,
            "uri": uri,
            "headers": list(headers),
            "content_headers": list(content.headers) if content is not None else [],
            "body": body,
            "properties": dict(properties or {}),
            "cancellation": cancellation,
        })
        if self.delay is not None:
            await asyncio.sleep(self.delay)
        return HttpResponse(self.status_code, self.headers, content=self.body, reason_phrase="Reason")

    async def aclose(self):
        self.closed = True

    @property
    def last(self):
        return self.sent[-1]


@pytest.fixture
def transport():
    return FakeTransport()


def make_operation(name="op", method="GET", path="", parameters=None, **kwargs) -> Operation:
    return Operation(
        name=name,
        requests=[RequestDeclaration(method=method, path=path)],
        parameters=parameters or [],
        **kwargs,
    )


def make_surface(*operations, **kwargs) -> ContractSurface:
    return ContractSurface(name=kwargs.pop("name", "Api"), operations=list(operations), **kwargs)


def param(name, *bindings, **kwargs) -> Parameter:
    return Parameter(name=name, bindings=list(bindings), **kwargs)
