"""Source backend: renders a client class as Python source, then loads it."""

import ast
import logging
import types

from rest_contract.contract.base import ContractSurface, Operation, Property
from rest_contract.errors import RestContractError
from rest_contract.generator.backend import check_member_names, class_name
from rest_contract.generator.client import RESERVED_NAMES, ContractClient

logger = logging.getLogger(__name__)

INDENT = "    "
MODULE_PREFIX = "rest_contract.generated"


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python sources for syntax errors.

    Returns dict of {filename: error_message} for sources with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not content.strip():
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


class SourceBackend:
    """Generates the client ahead of time as source text.

    ``render`` is usable on its own to inspect the generated class;
    ``compile`` renders, checks and executes it.
    """

    def render(self, surface: ContractSurface) -> str:
        check_member_names(surface, RESERVED_NAMES)
        lines = [
            f'"""Client for the {surface.name} contract."""',
            "",
            "from rest_contract.generator.client import MISSING, ContractClient",
            "",
            "",
            f"class {class_name(surface)}(ContractClient):",
            f'{INDENT}"""Client for the {surface.name} contract."""',
        ]
        for operation in surface.operations:
            lines.append("")
            lines.extend(self._render_operation(operation))
        for prop in surface.properties:
            lines.append("")
            lines.extend(self._render_property(prop))
        return "\n".join(lines) + "\n"

    def _render_operation(self, operation: Operation) -> list[str]:
        names = [p.name for p in operation.parameters]
        signature = ", ".join(["self"] + [f"{n}=MISSING" for n in names])
        arguments = ", ".join(f"{n!r}: {n}" for n in names)
        return [
            f"{INDENT}async def {operation.name}({signature}):",
            f"{INDENT * 2}return await self._invoke({operation.name!r}, {{{arguments}}})",
        ]

    def _render_property(self, prop: Property) -> list[str]:
        if prop.is_requester:
            return [
                f"{INDENT}@property",
                f"{INDENT}def {prop.name}(self):",
                f"{INDENT * 2}return self._requester",
            ]
        return [
            f"{INDENT}@property",
            f"{INDENT}def {prop.name}(self):",
            f"{INDENT * 2}return self._property_values.get({prop.name!r})",
            "",
            f"{INDENT}@{prop.name}.setter",
            f"{INDENT}def {prop.name}(self, value):",
            f"{INDENT * 2}self._property_values[{prop.name!r}] = value",
        ]

    def compile(self, surface: ContractSurface) -> type[ContractClient]:
        source = self.render(surface)
        filename = f"<rest_contract:{surface.name}>"
        errors = validate_python({filename: source})
        if errors:
            raise RestContractError(f"Generated source for '{surface.name}' is invalid: {errors[filename]}")

        module = types.ModuleType(f"{MODULE_PREFIX}.{class_name(surface)}", f"Client for the {surface.name} contract.")
        module.__file__ = filename
        exec(compile(source, filename, "exec"), module.__dict__)
        cls = getattr(module, class_name(surface))
        cls.surface = surface
        logger.debug("Compiled client source for %s (%d lines)", surface.name, source.count("\n"))
        return cls
