"""Client base class and the backend which builds implementations at load time."""

import inspect
import logging
from typing import Any, ClassVar

from rest_contract.contract.base import ContractSurface, Operation, Property
from rest_contract.generator.backend import check_member_names, class_name
from rest_contract.request.builder import DescriptorBuilder
from rest_contract.requester import Requester

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


class ContractClient:
    """Base class of every generated client.

    Operations become async methods, properties become attributes whose
    values feed every later call.
    """

    surface: ClassVar[ContractSurface]

    def __init__(self, requester: Requester):
        self._requester = requester
        self._builder = DescriptorBuilder(self.surface)
        self._property_values: dict[str, Any] = {}

    async def _invoke(self, operation_name: str, arguments: dict[str, Any]) -> Any:
        operation = self.surface.get_operation(operation_name)
        if operation is not None and operation.is_dispose:
            await self.aclose()
            return None
        arguments = {k: v for k, v in arguments.items() if v is not MISSING}
        descriptor = self._builder.build(operation_name, arguments, self._property_values)
        return await self._requester.request(descriptor)

    async def aclose(self) -> None:
        await self._requester.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} contract={self.surface.name!r}>"


RESERVED_NAMES = {name for name in dir(ContractClient) if not name.startswith("__")}


def _operation_method(operation: Operation):
    params = [inspect.Parameter("self", inspect.Parameter.POSITIONAL_OR_KEYWORD)]
    params.extend(
        inspect.Parameter(p.name, inspect.Parameter.POSITIONAL_OR_KEYWORD, default=MISSING)
        for p in operation.parameters
    )
    signature = inspect.Signature(params)

    async def method(*args, **kwargs):
        bound = signature.bind(*args, **kwargs)
        self = bound.arguments.pop("self")
        return await self._invoke(operation.name, dict(bound.arguments))

    method.__name__ = operation.name
    method.__signature__ = signature
    return method


def _property_attribute(prop: Property) -> property:
    if prop.is_requester:
        return property(lambda self: self._requester, doc="The underlying requester.")

    def getter(self):
        return self._property_values.get(prop.name)

    def setter(self, value):
        self._property_values[prop.name] = value

    return property(getter, setter)


class DynamicBackend:
    """Builds the client class directly with ``type()``."""

    def compile(self, surface: ContractSurface) -> type[ContractClient]:
        check_member_names(surface, RESERVED_NAMES)
        name = class_name(surface)
        namespace: dict[str, Any] = {"surface": surface, "__doc__": f"Client for the {surface.name} contract."}
        for operation in surface.operations:
            method = _operation_method(operation)
            method.__qualname__ = f"{name}.{operation.name}"
            namespace[operation.name] = method
        for prop in surface.properties:
            namespace[prop.name] = _property_attribute(prop)
        logger.debug("Built client class %s with %d operations", name, len(surface.operations))
        return type(name, (ContractClient,), namespace)
