"""Validates a contract surface before any call is made.

Every check runs; the report lists all problems rather than the first one.
"""

import logging
import re
import types
import typing
from collections import defaultdict
from collections.abc import Mapping

from rest_contract.contract.base import (
    BodyBinding,
    CancellationBinding,
    ContractSurface,
    HeaderBinding,
    Operation,
    Parameter,
    PathBinding,
    Property,
    QueryBinding,
    QueryMapBinding,
    RawQueryBinding,
)
from rest_contract.contract.diagnostics import Diagnostic, DiagnosticCode, ValidationReport

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{(.+?)\}")
ABSOLUTE_URI_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://[^/?#]")

MAP_TYPE_NAMES = {"map", "dict", "mapping", "object"}


def placeholders(template: str | None) -> list[str]:
    """Placeholder names in a path template, in order of appearance."""
    if not template:
        return []
    return PLACEHOLDER_PATTERN.findall(template)


def is_absolute_uri(value: str | None) -> bool:
    return bool(value) and ABSOLUTE_URI_PATTERN.match(value) is not None


def is_map_shaped(annotation) -> bool:
    """True when an annotation describes something iterable as key/value pairs."""
    if annotation is None or annotation is typing.Any:
        return True
    if isinstance(annotation, str):
        return annotation.lower() in MAP_TYPE_NAMES
    origin = typing.get_origin(annotation) or annotation
    if origin in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return bool(args) and all(is_map_shaped(a) for a in args)
    return isinstance(origin, type) and issubclass(origin, Mapping)


def validate_contract(surface: ContractSurface) -> ValidationReport:
    """Run every check against ``surface`` and return the full report."""
    reporter = _Reporter(surface)

    _check_surface(surface, reporter)
    _check_surface_path_properties(surface, reporter)
    _check_request_properties(surface, reporter)
    _check_properties(surface, reporter)
    for operation in surface.operations:
        if operation.is_dispose:
            continue
        _check_operation(surface, operation, reporter)

    report = ValidationReport(surface=surface.name, diagnostics=reporter.diagnostics)
    logger.debug(
        "Validated contract %s: %d diagnostic(s), usable=%s",
        surface.name, len(report.diagnostics), report.is_usable,
    )
    return report


class _Reporter:
    def __init__(self, surface: ContractSurface):
        self.surface = surface
        self.diagnostics: list[Diagnostic] = []

    def add(self, code: DiagnosticCode, location: str, message: str) -> None:
        self.diagnostics.append(Diagnostic(code=code, location=location, message=message))

    def at_surface(self) -> str:
        return self.surface.name

    def at_property(self, prop: Property) -> str:
        return f"{self.surface.name}.{prop.name}"

    def at_operation(self, operation: Operation, parameter: Parameter | None = None) -> str:
        location = f"{self.surface.name}.{operation.name}"
        if parameter is not None:
            location += f"({parameter.name})"
        return location


def _check_surface(surface: ContractSurface, reporter: _Reporter) -> None:
    if not surface.accessible:
        reporter.add(
            DiagnosticCode.INTERFACE_TYPE_MUST_BE_ACCESSIBLE, reporter.at_surface(),
            f"Surface '{surface.name}' must be accessible to the implementation backend",
        )

    for header in surface.headers:
        if header.value is None:
            reporter.add(
                DiagnosticCode.HEADER_ON_INTERFACE_MUST_HAVE_VALUE, reporter.at_surface(),
                f"Header '{header.name}' on the surface must declare a value",
            )
        if ":" in header.name:
            reporter.add(
                DiagnosticCode.HEADER_MUST_NOT_HAVE_COLON_IN_NAME, reporter.at_surface(),
                f"Header name '{header.name}' must not contain a colon",
            )

    for decl in surface.status_code_policies:
        if decl.declared_on not in (None, surface.name):
            reporter.add(
                DiagnosticCode.ALLOW_ANY_STATUS_CODE_NOT_ALLOWED_ON_PARENT_INTERFACE, reporter.at_surface(),
                f"Parent surface '{decl.declared_on}' may not declare a status code policy",
            )

    for event in surface.events:
        reporter.add(
            DiagnosticCode.EVENTS_NOT_ALLOWED, f"{surface.name}.{event}",
            "Contract surfaces must not have any events",
        )

    if surface.base_address is not None and not is_absolute_uri(surface.base_address):
        reporter.add(
            DiagnosticCode.BASE_ADDRESS_MUST_BE_ABSOLUTE, reporter.at_surface(),
            f"Base address '{surface.base_address}' must be an absolute URI",
        )


def _check_surface_path_properties(surface: ContractSurface, reporter: _Reporter) -> None:
    by_key: dict[str, list[Property]] = defaultdict(list)
    for prop in surface.properties:
        if prop.path_name is not None:
            by_key[prop.path_name].append(prop)

    for key, props in by_key.items():
        if len(props) > 1:
            reporter.add(
                DiagnosticCode.MULTIPLE_PATH_PROPERTIES_FOR_KEY, reporter.at_property(props[1]),
                f"Found more than one path property for key '{key}'",
            )

    for missing in _missing(placeholders(surface.base_address), by_key):
        reporter.add(
            DiagnosticCode.MISSING_PATH_PROPERTY_FOR_BASE_ADDRESS_PLACEHOLDER, reporter.at_surface(),
            f"Unable to find a path property for the placeholder '{{{missing}}}' "
            f"in base address '{surface.base_address}'",
        )
    for missing in _missing(placeholders(surface.base_path), by_key):
        reporter.add(
            DiagnosticCode.MISSING_PATH_PROPERTY_FOR_BASE_PATH_PLACEHOLDER, reporter.at_surface(),
            f"Unable to find a path property for the placeholder '{{{missing}}}' "
            f"in base path '{surface.base_path}'",
        )


def _missing(names: list[str], available) -> list[str]:
    result = []
    for name in names:
        if name not in available and name not in result:
            result.append(name)
    return result


def _check_request_properties(surface: ContractSurface, reporter: _Reporter) -> None:
    by_key: dict[str, list[Property]] = defaultdict(list)
    for prop in surface.properties:
        key = prop.request_property_key
        if key is not None:
            by_key[key].append(prop)
    for key, props in by_key.items():
        if len(props) > 1:
            reporter.add(
                DiagnosticCode.MULTIPLE_REQUEST_PROPERTIES_FOR_KEY, reporter.at_property(props[1]),
                f"Found more than one property with request property key '{key}'",
            )


def _check_properties(surface: ContractSurface, reporter: _Reporter) -> None:
    has_requester = False
    for prop in surface.properties:
        location = reporter.at_property(prop)
        if prop.is_requester:
            if has_requester:
                reporter.add(
                    DiagnosticCode.MULTIPLE_REQUESTER_PROPERTIES, location,
                    f"Property {prop.name}: there must not be more than one requester property",
                )
            if prop.bindings:
                roles = ", ".join(b.role for b in prop.bindings)
                reporter.add(
                    DiagnosticCode.REQUESTER_PROPERTY_MUST_HAVE_ZERO_ATTRIBUTES, location,
                    f"Requester property {prop.name} must not have the following bindings: {roles}",
                )
            if not prop.readable or prop.writable:
                reporter.add(
                    DiagnosticCode.PROPERTY_MUST_BE_READ_ONLY, location,
                    f"Property {prop.name} must have a getter but not a setter",
                )
            has_requester = True
            continue

        if len(prop.bindings) != 1:
            reporter.add(
                DiagnosticCode.PROPERTY_MUST_HAVE_ONE_ATTRIBUTE, location,
                f"Property {prop.name} must have exactly one binding",
            )
        elif not prop.readable or not prop.writable:
            reporter.add(
                DiagnosticCode.PROPERTY_MUST_BE_READ_WRITE, location,
                f"Property {prop.name} must have a getter and a setter",
            )

        header = prop.binding(HeaderBinding)
        if header is not None:
            if header.value is not None and not prop.nullable:
                reporter.add(
                    DiagnosticCode.HEADER_PROPERTY_WITH_VALUE_MUST_BE_NULLABLE, location,
                    f"Header '{header.name}' on property {prop.name} declares a default value, "
                    "so the property must be nullable",
                )
            if ":" in header.name:
                reporter.add(
                    DiagnosticCode.HEADER_MUST_NOT_HAVE_COLON_IN_NAME, location,
                    f"Header name '{header.name}' on property {prop.name} must not contain a colon",
                )


def _check_operation(surface: ContractSurface, operation: Operation, reporter: _Reporter) -> None:
    location = reporter.at_operation(operation)

    if not operation.requests:
        reporter.add(
            DiagnosticCode.METHOD_MUST_HAVE_REQUEST_ATTRIBUTE, location,
            f"Operation {operation.name} does not declare a request method and path",
        )
    elif len(operation.requests) > 1:
        found = ", ".join(r.method for r in operation.requests)
        reporter.add(
            DiagnosticCode.METHOD_MUST_HAVE_ONE_REQUEST_ATTRIBUTE, location,
            f"Operation {operation.name} must declare a single request, found ({found})",
        )
    else:
        _check_path_parameters(surface, operation, reporter)

    if not operation.awaitable:
        reporter.add(
            DiagnosticCode.METHOD_MUST_HAVE_VALID_RETURN_TYPE, location,
            f"Operation {operation.name} must be awaitable",
        )

    for header in operation.headers:
        if ":" in header.name:
            reporter.add(
                DiagnosticCode.HEADER_MUST_NOT_HAVE_COLON_IN_NAME, location,
                f"Header name '{header.name}' on operation {operation.name} must not contain a colon",
            )

    cancellations = [p for p in operation.parameters if p.has(CancellationBinding)]
    if len(cancellations) > 1:
        reporter.add(
            DiagnosticCode.MULTIPLE_CANCELLATION_TOKEN_PARAMETERS, reporter.at_operation(operation, cancellations[1]),
            f"Operation {operation.name}: only a single cancellation parameter is allowed",
        )

    bodies = [p for p in operation.parameters if p.has(BodyBinding)]
    if len(bodies) > 1:
        reporter.add(
            DiagnosticCode.MULTIPLE_BODY_PARAMETERS, reporter.at_operation(operation, bodies[1]),
            f"Operation {operation.name}: found more than one body parameter",
        )

    _check_request_property_parameters(surface, operation, reporter)

    for parameter in operation.parameters:
        _check_parameter(operation, parameter, reporter)


def _check_path_parameters(surface: ContractSurface, operation: Operation, reporter: _Reporter) -> None:
    template = operation.request.path or ""
    path_params = [p for p in operation.parameters if p.has(PathBinding)]

    by_key: dict[str, list[Parameter]] = defaultdict(list)
    for p in path_params:
        by_key[p.path_name].append(p)
    for key, params in by_key.items():
        if len(params) > 1:
            reporter.add(
                DiagnosticCode.MULTIPLE_PATH_PARAMETERS_FOR_KEY, reporter.at_operation(operation, params[1]),
                f"Operation {operation.name}: found more than one path parameter for key '{key}'",
            )

    # A path property may fill a placeholder on its own or alongside a parameter.
    available = set(by_key) | {p.path_name for p in surface.properties if p.path_name is not None}
    names = placeholders(template)
    for missing in _missing(names, available):
        reporter.add(
            DiagnosticCode.MISSING_PATH_PROPERTY_OR_PARAMETER_FOR_PLACEHOLDER, reporter.at_operation(operation),
            f"Operation {operation.name}: unable to find a path property or parameter "
            f"for the placeholder '{{{missing}}}'",
        )
    for key, params in by_key.items():
        if key not in names:
            reporter.add(
                DiagnosticCode.MISSING_PLACEHOLDER_FOR_PATH_PARAMETER, reporter.at_operation(operation, params[0]),
                f"Operation {operation.name}: unable to find a placeholder {{{key}}} for the path parameter '{key}'",
            )


def _check_request_property_parameters(surface: ContractSurface, operation: Operation, reporter: _Reporter) -> None:
    params = [p for p in operation.parameters if p.request_property_key is not None]
    for param in params:
        key = param.request_property_key
        duplicate = next((prop for prop in surface.properties if prop.request_property_key == key), None)
        if duplicate is not None:
            reporter.add(
                DiagnosticCode.REQUEST_PROPERTY_PARAMETER_DUPLICATES_PROPERTY_FOR_KEY,
                reporter.at_operation(operation, param),
                f"Operation {operation.name}: request property parameter '{param.name}' with key '{key}' "
                f"duplicates property '{duplicate.name}'",
            )

    by_key: dict[str, list[Parameter]] = defaultdict(list)
    for param in params:
        by_key[param.request_property_key].append(param)
    for key, group in by_key.items():
        if len(group) > 1:
            reporter.add(
                DiagnosticCode.MULTIPLE_REQUEST_PROPERTY_PARAMETERS_FOR_KEY, reporter.at_operation(operation, group[1]),
                f"Operation {operation.name}: found more than one parameter with request property key '{key}'",
            )


def _check_parameter(operation: Operation, parameter: Parameter, reporter: _Reporter) -> None:
    location = reporter.at_operation(operation, parameter)

    if parameter.by_reference:
        reporter.add(
            DiagnosticCode.PARAMETER_MUST_NOT_BE_BY_REF, location,
            f"Operation {operation.name}: parameter '{parameter.name}' must not be passed by reference",
        )

    if parameter.has(CancellationBinding):
        others = [b.role for b in parameter.bindings if not isinstance(b, CancellationBinding)]
        if others:
            reporter.add(
                DiagnosticCode.CANCELLATION_TOKEN_MUST_HAVE_ZERO_ATTRIBUTES, location,
                f"Operation {operation.name}: cancellation parameter '{parameter.name}' "
                f"must not have any other bindings ({', '.join(others)})",
            )
        return

    header = parameter.binding(HeaderBinding)
    if header is not None:
        if header.value is not None:
            reporter.add(
                DiagnosticCode.HEADER_PARAMETER_MUST_NOT_HAVE_VALUE, location,
                f"Operation {operation.name}: header '{header.name}' on parameter '{parameter.name}' "
                "must not declare a value",
            )
        if ":" in header.name:
            reporter.add(
                DiagnosticCode.HEADER_MUST_NOT_HAVE_COLON_IN_NAME, location,
                f"Operation {operation.name}: header name '{header.name}' must not contain a colon",
            )

    if parameter.has(QueryBinding) and parameter.has(RawQueryBinding):
        reporter.add(
            DiagnosticCode.QUERY_CONFLICT_WITH_RAW_QUERY_STRING, location,
            f"Operation {operation.name}: parameter '{parameter.name}' must not be bound to both "
            "query and raw query string",
        )

    if parameter.has(QueryMapBinding) and not is_map_shaped(parameter.annotation):
        reporter.add(
            DiagnosticCode.QUERY_MAP_PARAMETER_IS_NOT_A_DICTIONARY, location,
            f"Operation {operation.name}: query map parameter '{parameter.name}' is not a mapping type",
        )


