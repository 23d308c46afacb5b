"""Entry point wiring transport, serializers and a backend into contract clients."""

import logging

from rest_contract.config import ClientSettings
from rest_contract.contract.base import ContractSurface
from rest_contract.contract.diagnostics import ValidationReport
from rest_contract.contract.validator import validate_contract
from rest_contract.generator.backend import ImplementationBackend
from rest_contract.generator.client import ContractClient, DynamicBackend
from rest_contract.request.uri import QueryStringBuilder
from rest_contract.requester import RequestModifier, Requester
from rest_contract.serialization.json import (
    RequestBodySerializer,
    RequestPathParamSerializer,
    RequestQueryParamSerializer,
    ResponseDeserializer,
)
from rest_contract.transport import DEFAULT_TIMEOUT, HttpxTransport, Transport

logger = logging.getLogger(__name__)


class RestClient:
    """Creates clients for contract surfaces.

    Each surface is validated once; the report is cached and a surface with
    errors is refused with ``ContractValidationError``.

        client = RestClient("https://api.example.com")
        users = client.for_contract(load_contract("users.yaml"))
        user = await users.get_user(user_id=42)
    """

    def __init__(
        self,
        base_url: str | None = None,
        transport: Transport | None = None,
        *,
        timeout: float | None = DEFAULT_TIMEOUT,
        body_serializer: RequestBodySerializer | None = None,
        query_serializer: RequestQueryParamSerializer | None = None,
        path_serializer: RequestPathParamSerializer | None = None,
        response_deserializer: ResponseDeserializer | None = None,
        request_modifier: RequestModifier | None = None,
        query_string_builder: QueryStringBuilder | None = None,
        backend: ImplementationBackend | None = None,
    ):
        self.transport = transport or HttpxTransport(base_address=base_url, timeout=timeout)
        self.requester = Requester(
            self.transport,
            body_serializer=body_serializer,
            query_serializer=query_serializer,
            path_serializer=path_serializer,
            response_deserializer=response_deserializer,
            request_modifier=request_modifier,
            query_string_builder=query_string_builder,
        )
        self.backend = backend or DynamicBackend()
        # keyed by id(); the surface is kept alongside so the id stays valid
        self._reports: dict[int, tuple[ContractSurface, ValidationReport]] = {}
        self._classes: dict[int, tuple[ContractSurface, type]] = {}

    @classmethod
    def from_settings(cls, settings: ClientSettings | None = None, **kwargs) -> "RestClient":
        settings = settings or ClientSettings.from_env()
        return cls(settings.base_url, timeout=settings.timeout, **kwargs)

    def validate(self, surface: ContractSurface) -> ValidationReport:
        cached = self._reports.get(id(surface))
        if cached is None:
            cached = (surface, validate_contract(surface))
            self._reports[id(surface)] = cached
        return cached[1]

    def for_contract(self, surface: ContractSurface) -> ContractClient:
        cached = self._classes.get(id(surface))
        if cached is None:
            self.validate(surface).raise_for_errors()
            cached = (surface, self.backend.compile(surface))
            self._classes[id(surface)] = cached
        return cached[1](self.requester)

    async def aclose(self) -> None:
        await self.requester.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
