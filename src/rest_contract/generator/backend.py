"""Implementation backends turn a validated surface into a client class."""

import keyword
import re
from typing import Protocol

from rest_contract.contract.base import ContractSurface
from rest_contract.errors import RestContractError


class ImplementationBackend(Protocol):
    def compile(self, surface: ContractSurface) -> type:
        """Return a class whose instances are built from a Requester."""
        ...


def class_name(surface: ContractSurface) -> str:
    name = re.sub(r"\W", "_", surface.name)
    if not name or name[0].isdigit():
        name = "_" + name
    return name


def check_member_names(surface: ContractSurface, reserved: set[str]) -> None:
    """Operation, parameter and property names must be usable as Python identifiers."""
    members = [op.name for op in surface.operations] + [prop.name for prop in surface.properties]
    for name in members:
        if not name.isidentifier() or keyword.iskeyword(name):
            raise RestContractError(f"'{surface.name}.{name}' is not a valid Python identifier")
        if name in reserved:
            raise RestContractError(f"'{surface.name}.{name}' clashes with a built-in client member")
    for op in surface.operations:
        for param in op.parameters:
            if not param.name.isidentifier() or keyword.iskeyword(param.name) or param.name == "self":
                raise RestContractError(
                    f"Parameter '{param.name}' of '{surface.name}.{op.name}' is not a valid Python identifier"
                )
