from pathlib import Path

import pytest

from rest_contract.contract.base import ContractSurface, Operation, Parameter, Property
from rest_contract.contract.loader import load_contract
from rest_contract.errors import ContractValidationError, RestContractError
from rest_contract.generator.client import ContractClient, DynamicBackend
from rest_contract.generator.source import SourceBackend, validate_python
from rest_contract.response import Response
from rest_contract.rest_client import RestClient

from conftest import FakeTransport

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def surface():
    return load_contract(FIXTURES / "pets_contract.yaml")


@pytest.fixture(params=[DynamicBackend, SourceBackend], ids=["dynamic", "source"])
def backend(request):
    return request.param()


class TestBackends:
    def test_compiles_client_class(self, surface, backend):
        cls = backend.compile(surface)
        assert issubclass(cls, ContractClient)
        assert cls.__name__ == "PetsApi"
        assert cls.surface is surface

    @pytest.mark.asyncio
    async def test_operation_call(self, surface, backend):
        transport = FakeTransport(body=b'{"id": 3, "name": "rex"}')
        client = RestClient(transport=transport, backend=backend).for_contract(surface)
        client.tenant = "acme"
        client.api_key = "secret"

        pet = await client.get_pet(3)

        assert pet == {"id": 3, "name": "rex"}
        sent = transport.last
        assert sent["uri"] == "http://petstore.example.com/v1/acme/pets/3"
        assert ("X-Api-Key", "secret") in sent["headers"]
        assert ("Accept", "application/json") in sent["headers"]

    @pytest.mark.asyncio
    async def test_keyword_arguments_and_defaults(self, surface, backend):
        transport = FakeTransport(body=b"[]")
        client = RestClient(transport=transport, backend=backend).for_contract(surface)
        client.tenant = "t"
        await client.list_pets(tags=["a", "b"])
        assert transport.last["uri"] == "http://petstore.example.com/v1/t/pets?tag=a&tag=b"

    @pytest.mark.asyncio
    async def test_operation_header_removes_surface_header(self, surface, backend):
        transport = FakeTransport(status_code=201, body=b'{"id": 1}')
        client = RestClient(transport=transport, backend=backend).for_contract(surface)
        client.tenant = "t"
        response = await client.create_pet({"name": "rex"})

        assert isinstance(response, Response)
        assert response.get_content() == {"id": 1}
        names = [k.lower() for k, _ in transport.last["headers"]]
        assert "user-agent" not in names
        assert transport.last["body"] == b'{"name":"rex"}'

    @pytest.mark.asyncio
    async def test_form_body(self, surface, backend):
        transport = FakeTransport(body=b"noted")
        client = RestClient(transport=transport, backend=backend).for_contract(surface)
        client.tenant = "t"
        assert await client.add_note(1, {"text": "good dog"}) == "noted"
        assert transport.last["body"] == b"text=good+dog"

    @pytest.mark.asyncio
    async def test_dispose_closes_requester(self, surface, backend):
        transport = FakeTransport()
        client = RestClient(transport=transport, backend=backend).for_contract(surface)
        await client.close()
        assert transport.closed
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_too_many_arguments(self, surface, backend):
        client = backend.compile(surface)(None)
        with pytest.raises(TypeError):
            await client.get_pet(1, 2)

    def test_properties_start_unset(self, surface, backend):
        client = backend.compile(surface)(None)
        assert client.api_key is None

    def test_requester_accessor_is_read_only(self, backend):
        surface = ContractSurface(name="Api", properties=[Property(name="requester", is_requester=True, writable=False)])
        client = backend.compile(surface)("the requester")
        assert client.requester == "the requester"
        with pytest.raises(AttributeError):
            client.requester = "other"

    def test_invalid_member_name(self, backend):
        surface = ContractSurface(name="Api", operations=[Operation(name="not-valid")])
        with pytest.raises(RestContractError):
            backend.compile(surface)

    def test_reserved_member_name(self, backend):
        surface = ContractSurface(name="Api", operations=[Operation(name="aclose")])
        with pytest.raises(RestContractError, match="clashes"):
            backend.compile(surface)


class TestSourceBackend:
    def test_render(self, surface):
        source = SourceBackend().render(surface)
        assert "class PetsApi(ContractClient):" in source
        assert "    async def get_pet(self, pet_id=MISSING):" in source
        assert "    @api_key.setter" in source
        assert validate_python({"client.py": source}) == {}
        assert "from rest_contract.generator.client import MISSING, ContractClient" in source

    def test_compiled_class_lives_in_a_named_module(self, surface):
        cls = SourceBackend().compile(surface)
        assert cls.__module__ == "rest_contract.generated.PetsApi"
        assert cls.surface is surface

    def test_render_parameterless_operation(self):
        surface = ContractSurface(name="Api", operations=[Operation(name="ping", parameters=[])])
        assert "async def ping(self):" in SourceBackend().render(surface)

    def test_validate_python_reports_syntax_errors(self):
        errors = validate_python({"bad.py": "def broken(:\n"})
        assert "bad.py" in errors
        assert "SyntaxError" in errors["bad.py"]

    def test_bad_parameter_name(self):
        surface = ContractSurface(name="Api", operations=[
            Operation(name="op", parameters=[Parameter(name="class")]),
        ])
        with pytest.raises(RestContractError):
            SourceBackend().render(surface)


class TestRestClient:
    def test_refuses_invalid_contract(self):
        rest = RestClient(transport=FakeTransport())
        surface = load_contract(FIXTURES / "broken_contract.yaml")
        with pytest.raises(ContractValidationError) as exc_info:
            rest.for_contract(surface)
        assert "REST036" in exc_info.value.codes

    def test_validation_is_cached(self, surface):
        rest = RestClient(transport=FakeTransport())
        assert rest.validate(surface) is rest.validate(surface)

    def test_client_class_is_cached(self, surface):
        rest = RestClient(transport=FakeTransport())
        assert type(rest.for_contract(surface)) is type(rest.for_contract(surface))

    def test_default_transport_uses_base_url(self):
        rest = RestClient("http://api.example.com")
        assert rest.transport.base_address == "http://api.example.com"

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self):
        transport = FakeTransport()
        async with RestClient(transport=transport):
            pass
        assert transport.closed
