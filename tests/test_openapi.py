import json
from pathlib import Path

import pytest

from rest_contract.contract.base import (
    BodyBinding,
    BodySerializationMethod,
    HeaderBinding,
    PathBinding,
    QueryBinding,
    ResultKind,
)
from rest_contract.contract.openapi import import_openapi, snake_case
from rest_contract.contract.validator import validate_contract
from rest_contract.request.builder import DescriptorBuilder
from rest_contract.requester import Requester

from conftest import FakeTransport

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def petstore():
    return import_openapi(FIXTURES / "petstore.yaml")


class TestSnakeCase:
    @pytest.mark.parametrize("name, expected", [
        ("listPets", "list_pets"),
        ("showPetById", "show_pet_by_id"),
        ("X-Request-Id", "x_request_id"),
        ("post_/pets/{petId}/notes", "post_pets_pet_id_notes"),
        ("2fa", "_2fa"),
    ])
    def test_names(self, name, expected):
        assert snake_case(name) == expected


class TestImportOpenApi:
    def test_surface(self, petstore):
        assert petstore.name == "SwaggerPetstore"
        assert petstore.base_address == "http://petstore.example.com/v1"
        assert petstore.base_path is None
        assert [op.name for op in petstore.operations] == [
            "list_pets", "create_pets", "show_pet_by_id", "post_pets_pet_id_notes",
        ]

    def test_query_and_header_parameters(self, petstore):
        op = petstore.get_operation("list_pets")
        assert op.request.method == "GET"
        assert op.request.path == "/pets"
        assert [p.name for p in op.parameters] == ["limit", "x_request_id"]
        assert op.get_parameter("limit").binding(QueryBinding).name == "limit"
        assert op.get_parameter("limit").annotation == "integer"
        assert op.get_parameter("x_request_id").binding(HeaderBinding).name == "X-Request-Id"
        assert op.returns == ResultKind.DESERIALIZED

    def test_json_request_body(self, petstore):
        op = petstore.get_operation("create_pets")
        body = op.get_parameter("body").binding(BodyBinding)
        assert body.serialization is None
        assert op.returns == ResultKind.NONE

    def test_path_level_parameter_reference(self, petstore):
        op = petstore.get_operation("show_pet_by_id")
        assert op.get_parameter("pet_id").binding(PathBinding).name == "petId"
        assert op.request.path == "/pets/{petId}"

    def test_form_body_and_text_response(self, petstore):
        op = petstore.get_operation("post_pets_pet_id_notes")
        assert op.get_parameter("body").binding(BodyBinding).serialization == BodySerializationMethod.URL_ENCODED
        assert op.returns == ResultKind.RAW_STRING

    def test_imported_surface_is_valid(self, petstore):
        assert validate_contract(petstore).is_usable

    def test_name_override(self):
        assert import_openapi(FIXTURES / "petstore.yaml", name="Pets").name == "Pets"


class TestSwagger2:
    def write(self, tmp_path, doc):
        path = tmp_path / "swagger.json"
        path.write_text(json.dumps(doc))
        return path

    def test_host_and_base_path(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "swagger": "2.0",
            "info": {"title": "legacy api"},
            "host": "api.example.com",
            "basePath": "/v2",
            "schemes": ["http"],
            "paths": {},
        }))
        assert surface.name == "LegacyApi"
        assert surface.base_address == "http://api.example.com/v2"

    def test_form_data_and_body_parameters(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "swagger": "2.0",
            "info": {"title": "x"},
            "paths": {
                "/login": {"post": {
                    "operationId": "login",
                    "parameters": [
                        {"name": "user", "in": "formData", "type": "string"},
                        {"name": "password", "in": "formData", "type": "string"},
                    ],
                    "responses": {"200": {"description": "ok", "schema": {"type": "object"}}},
                }},
                "/users": {"put": {
                    "operationId": "putUser",
                    "parameters": [{"name": "user", "in": "body", "schema": {"type": "object"}}],
                    "responses": {"204": {"description": "none"}},
                }},
            },
        }))
        login = surface.get_operation("login")
        assert [p.name for p in login.parameters] == ["form"]
        assert login.get_parameter("form").binding(BodyBinding).serialization == BodySerializationMethod.URL_ENCODED
        assert login.returns == ResultKind.DESERIALIZED

        put_user = surface.get_operation("put_user")
        assert put_user.get_parameter("user").has(BodyBinding)
        assert put_user.returns == ResultKind.NONE

    def test_duplicate_operation_ids(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "openapi": "3.0.0",
            "info": {"title": "dup"},
            "servers": [{"url": "/api"}],
            "paths": {
                "/a": {"get": {"operationId": "fetch", "responses": {}}},
                "/b": {"get": {"operationId": "fetch", "responses": {}}},
            },
        }))
        assert [op.name for op in surface.operations] == ["fetch", "fetch_2"]
        assert surface.base_address is None
        assert surface.base_path == "/api"

    def test_relative_server_url_reaches_the_uri(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "openapi": "3.0.0",
            "info": {"title": "rel"},
            "servers": [{"url": "/api"}],
            "paths": {"/pets": {"get": {"operationId": "listPets", "responses": {}}}},
        }))
        assert surface.get_operation("list_pets").request.path == "pets"
        descriptor = DescriptorBuilder(surface).build("list_pets", {})
        assert Requester(FakeTransport(base_address="http://h")).compose(descriptor).uri == "http://h/api/pets"

    def test_swagger_base_path_without_host(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "swagger": "2.0",
            "info": {"title": "nohost"},
            "basePath": "/v2",
            "paths": {"/users/{id}": {"get": {
                "operationId": "getUser",
                "parameters": [{"name": "id", "in": "path", "type": "string"}],
                "responses": {},
            }}},
        }))
        descriptor = DescriptorBuilder(surface).build("get_user", {"id": "7"})
        assert Requester(FakeTransport(base_address="http://h")).compose(descriptor).uri == "http://h/v2/users/7"

    def test_server_variables(self, tmp_path):
        surface = import_openapi(self.write(tmp_path, {
            "openapi": "3.0.0",
            "info": {"title": "vars"},
            "servers": [{"url": "https://{region}.example.com", "variables": {"region": {"default": "eu"}}}],
            "paths": {},
        }))
        assert surface.base_address == "https://eu.example.com"
