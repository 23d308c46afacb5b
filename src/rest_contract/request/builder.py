"""Builds a RequestDescriptor from one call's arguments."""

import copy
import logging
from typing import Any

from rest_contract.contract.base import (
    BodyBinding,
    CancellationBinding,
    ContractSurface,
    HeaderBinding,
    Operation,
    PathBinding,
    QueryBinding,
    QueryMapBinding,
    RawQueryBinding,
    RequestPropertyBinding,
    StatusCodePolicy,
)
from rest_contract.errors import RestContractError
from rest_contract.request.descriptor import (
    BodyValue,
    HeaderValue,
    PathValue,
    QueryMapValue,
    QueryValue,
    RequestDescriptor,
    RequestPropertyValue,
)
from rest_contract.request.uri import to_text
from rest_contract.serialization.resolver import ResolvedSerializationMethods

logger = logging.getLogger(__name__)


def snapshot(value: Any) -> Any:
    """Shallow-copy mutable containers so later changes by the caller don't leak in."""
    if isinstance(value, (list, dict, set, bytearray)):
        return copy.copy(value)
    return value


def header_text(value: Any) -> str | None:
    if value is None:
        return None
    return to_text(value)


class DescriptorBuilder:
    """Maps argument and property values onto their binding roles.

    Serialization methods are resolved once per operation and reused for
    every call.
    """

    def __init__(self, surface: ContractSurface):
        self.surface = surface
        self._resolved: dict[str, ResolvedSerializationMethods] = {}

    def _methods(self, operation: Operation) -> ResolvedSerializationMethods:
        methods = self._resolved.get(operation.name)
        if methods is None:
            methods = ResolvedSerializationMethods(self.surface.serialization, operation.serialization)
            self._resolved[operation.name] = methods
        return methods

    def build(
        self,
        operation_name: str,
        arguments: dict[str, Any] | None = None,
        property_values: dict[str, Any] | None = None,
    ) -> RequestDescriptor:
        operation = self.surface.get_operation(operation_name)
        if operation is None:
            raise RestContractError(f"'{self.surface.name}' has no operation '{operation_name}'")
        request = operation.request
        if request is None:
            raise RestContractError(f"Operation '{operation_name}' does not declare exactly one request")

        arguments = dict(arguments or {})
        unknown = set(arguments) - {p.name for p in operation.parameters}
        if unknown:
            raise TypeError(f"{operation_name}() got unexpected arguments: {', '.join(sorted(unknown))}")

        methods = self._methods(operation)
        fields: dict[str, Any] = {
            "surface_headers": [HeaderValue(name=h.name, value=h.value) for h in self.surface.headers],
            "operation_headers": [HeaderValue(name=h.name, value=h.value) for h in operation.headers],
            "property_headers": [],
            "parameter_headers": [],
            "path_properties": [],
            "path_parameters": [],
            "query_properties": [],
            "query_parameters": [],
            "query_maps": [],
            "raw_query": [],
            "property_request_properties": [],
            "parameter_request_properties": [],
        }

        self._add_properties(fields, methods, property_values or {})
        self._add_parameters(fields, methods, operation, arguments)

        policy = operation.status_code_policy or self.surface.status_code_policy or StatusCodePolicy.STRICT
        descriptor = RequestDescriptor(
            method=request.method,
            path=request.path or "",
            base_address=self.surface.base_address,
            base_path=self.surface.base_path,
            status_code_policy=policy,
            operation=operation,
            returns=operation.returns,
            result_type=operation.result_type,
            **fields,
        )
        logger.debug("Built descriptor for %s.%s", self.surface.name, operation_name)
        return descriptor

    def _add_properties(self, fields: dict, methods: ResolvedSerializationMethods, values: dict[str, Any]) -> None:
        for prop in self.surface.properties:
            if prop.is_requester:
                continue
            value = snapshot(values.get(prop.name))
            for binding in prop.bindings:
                if isinstance(binding, HeaderBinding):
                    if value is None:
                        value = binding.value
                    fields["property_headers"].append(HeaderValue(name=binding.name, value=header_text(value)))
                elif isinstance(binding, PathBinding):
                    fields["path_properties"].append(PathValue(
                        name=prop.path_name,
                        value=value,
                        serialization=methods.resolve_path(binding.serialization),
                        format=binding.format,
                        url_encode=binding.url_encode,
                    ))
                elif isinstance(binding, QueryBinding):
                    fields["query_properties"].append(QueryValue(
                        name=prop.query_name,
                        value=value,
                        serialization=methods.resolve_query(binding.serialization),
                        format=binding.format,
                    ))
                elif isinstance(binding, RequestPropertyBinding):
                    fields["property_request_properties"].append(
                        RequestPropertyValue(key=prop.request_property_key, value=value)
                    )

    def _add_parameters(
        self,
        fields: dict,
        methods: ResolvedSerializationMethods,
        operation: Operation,
        arguments: dict[str, Any],
    ) -> None:
        for param in operation.parameters:
            if param.name in arguments:
                value = arguments[param.name]
            else:
                value = param.default
            if not param.has(CancellationBinding):
                value = snapshot(value)

            if not param.bindings:
                # implicit query parameter
                fields["query_parameters"].append(QueryValue(
                    name=param.name, value=value, serialization=methods.resolve_query()
                ))
                continue

            for binding in param.bindings:
                if isinstance(binding, CancellationBinding):
                    fields["cancellation"] = value
                elif isinstance(binding, HeaderBinding):
                    fields["parameter_headers"].append(HeaderValue(name=binding.name, value=header_text(value)))
                elif isinstance(binding, PathBinding):
                    fields["path_parameters"].append(PathValue(
                        name=param.path_name,
                        value=value,
                        serialization=methods.resolve_path(binding.serialization),
                        format=binding.format,
                        url_encode=binding.url_encode,
                    ))
                elif isinstance(binding, QueryBinding):
                    fields["query_parameters"].append(QueryValue(
                        name=param.query_name,
                        value=value,
                        serialization=methods.resolve_query(binding.serialization),
                        format=binding.format,
                    ))
                elif isinstance(binding, RawQueryBinding):
                    fields["raw_query"].append(value)
                elif isinstance(binding, QueryMapBinding):
                    fields["query_maps"].append(QueryMapValue(
                        name=param.name, value=value, serialization=methods.resolve_query(binding.serialization)
                    ))
                elif isinstance(binding, BodyBinding):
                    fields["body"] = BodyValue(
                        name=param.name, value=value, serialization=methods.resolve_body(binding.serialization)
                    )
                elif isinstance(binding, RequestPropertyBinding):
                    fields["parameter_request_properties"].append(
                        RequestPropertyValue(key=param.request_property_key, value=value)
                    )
