import asyncio

import pytest
from pydantic import ValidationError

from rest_contract.contract.base import (
    BodyBinding,
    BodySerializationMethod,
    CancellationBinding,
    HeaderBinding,
    HeaderDeclaration,
    Operation,
    PathBinding,
    Property,
    QueryBinding,
    QueryMapBinding,
    QuerySerializationMethod,
    RawQueryBinding,
    RequestPropertyBinding,
    SerializationMethods,
    StatusCodePolicy,
    StatusCodePolicyDeclaration,
)
from rest_contract.errors import RestContractError
from rest_contract.request.builder import DescriptorBuilder

from conftest import make_operation, make_surface, param


class TestDescriptorBuilder:
    def test_maps_every_role(self):
        op = make_operation("search", path="items/{id}", parameters=[
            param("id", PathBinding()),
            param("q", QueryBinding(name="query")),
            param("plain"),
            param("raw", RawQueryBinding()),
            param("filters", QueryMapBinding()),
            param("trace", HeaderBinding(name="X-Trace")),
            param("meta", RequestPropertyBinding(key="m")),
        ])
        descriptor = DescriptorBuilder(make_surface(op)).build("search", {
            "id": 5, "q": "x", "plain": 1, "raw": "a=b", "filters": {"f": 1}, "trace": 42, "meta": "v",
        })

        assert descriptor.method == "GET"
        assert descriptor.path == "items/{id}"
        assert [(p.name, p.value) for p in descriptor.path_parameters] == [("id", 5)]
        assert [(q.name, q.value) for q in descriptor.query_parameters] == [("query", "x"), ("plain", 1)]
        assert descriptor.raw_query == ["a=b"]
        assert descriptor.query_maps[0].value == {"f": 1}
        assert [(h.name, h.value) for h in descriptor.parameter_headers] == [("X-Trace", "42")]
        assert descriptor.request_properties == {"m": "v"}

    def test_surface_and_operation_headers(self):
        op = make_operation(headers=[HeaderDeclaration(name="User-Agent")])
        surface = make_surface(op, headers=[HeaderDeclaration(name="User-Agent", value="agent")])
        descriptor = DescriptorBuilder(surface).build("op")
        assert [(h.name, h.value) for h in descriptor.surface_headers] == [("User-Agent", "agent")]
        assert [(h.name, h.value) for h in descriptor.operation_headers] == [("User-Agent", None)]

    def test_serialization_methods_are_resolved(self):
        op = make_operation(
            method="POST",
            parameters=[param("q", QueryBinding()), param("body", BodyBinding())],
            serialization=SerializationMethods(query=QuerySerializationMethod.SERIALIZED),
        )
        surface = make_surface(op, serialization=SerializationMethods(body=BodySerializationMethod.URL_ENCODED))
        descriptor = DescriptorBuilder(surface).build("op", {"q": 1, "body": {"a": 1}})
        assert descriptor.query_parameters[0].serialization == QuerySerializationMethod.SERIALIZED
        assert descriptor.body.serialization == BodySerializationMethod.URL_ENCODED

    def test_values_are_captured_at_call_time(self):
        op = make_operation(parameters=[param("ids", QueryBinding())])
        ids = [1, 2]
        descriptor = DescriptorBuilder(make_surface(op)).build("op", {"ids": ids})
        ids.append(3)
        assert descriptor.query_parameters[0].value == [1, 2]

    def test_defaults_are_used_for_missing_arguments(self):
        op = make_operation(parameters=[param("page", QueryBinding(), default=1)])
        descriptor = DescriptorBuilder(make_surface(op)).build("op")
        assert descriptor.query_parameters[0].value == 1

    def test_cancellation_forwarded_unchanged(self):
        op = make_operation(parameters=[param("cancel", CancellationBinding())])
        event = asyncio.Event()
        descriptor = DescriptorBuilder(make_surface(op)).build("op", {"cancel": event})
        assert descriptor.cancellation is event

    def test_property_values(self):
        op = make_operation(path="{tenant}/items")
        surface = make_surface(op, properties=[
            Property(name="tenant", bindings=[PathBinding()]),
            Property(name="key", bindings=[HeaderBinding(name="X-Key", value="fallback")]),
            Property(name="lang", bindings=[QueryBinding()]),
            Property(name="requester", is_requester=True, writable=False),
        ])
        builder = DescriptorBuilder(surface)

        descriptor = builder.build("op", {}, {"tenant": "acme", "lang": "en"})
        assert [(p.name, p.value) for p in descriptor.path_properties] == [("tenant", "acme")]
        assert [(h.name, h.value) for h in descriptor.property_headers] == [("X-Key", "fallback")]
        assert [(q.name, q.value) for q in descriptor.query_properties] == [("lang", "en")]

        descriptor = builder.build("op", {}, {"key": "secret"})
        assert descriptor.property_headers[0].value == "secret"

    def test_status_code_policy(self):
        strict = make_operation("strict")
        loose = make_operation("loose", status_code_policy=StatusCodePolicy.ALLOW_ANY)
        builder = DescriptorBuilder(make_surface(strict, loose))
        assert builder.build("strict").status_code_policy == StatusCodePolicy.STRICT
        assert builder.build("loose").status_code_policy == StatusCodePolicy.ALLOW_ANY

        surface = make_surface(
            make_operation("a"),
            make_operation("b", status_code_policy=StatusCodePolicy.STRICT),
            status_code_policies=[StatusCodePolicyDeclaration(policy=StatusCodePolicy.ALLOW_ANY)],
        )
        builder = DescriptorBuilder(surface)
        assert builder.build("a").status_code_policy == StatusCodePolicy.ALLOW_ANY
        assert builder.build("b").status_code_policy == StatusCodePolicy.STRICT

    def test_surface_base_is_captured(self):
        surface = make_surface(make_operation(), base_address="http://h", base_path="v1")
        descriptor = DescriptorBuilder(surface).build("op")
        assert descriptor.base_address == "http://h"
        assert descriptor.base_path == "v1"

    def test_unknown_operation(self):
        with pytest.raises(RestContractError):
            DescriptorBuilder(make_surface()).build("nope")

    def test_operation_without_request(self):
        with pytest.raises(RestContractError):
            DescriptorBuilder(make_surface(Operation(name="op"))).build("op")

    def test_unknown_argument(self):
        with pytest.raises(TypeError):
            DescriptorBuilder(make_surface(make_operation())).build("op", {"bogus": 1})

    def test_descriptor_is_frozen(self):
        descriptor = DescriptorBuilder(make_surface(make_operation())).build("op")
        with pytest.raises(ValidationError):
            descriptor.method = "POST"
