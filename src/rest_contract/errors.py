"""Exception hierarchy.

Contract errors are collected by the validator and raised together.
Call-time errors are split into programming errors (never expected on a
validated contract), argument errors and protocol errors. Transport errors
are not wrapped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rest_contract.contract.diagnostics import Diagnostic


class RestContractError(Exception):
    """Base class for every error raised by rest_contract itself."""


class ContractValidationError(RestContractError):
    """A contract surface has error-severity diagnostics and cannot be used."""

    def __init__(self, surface_name: str, diagnostics: list[Diagnostic]):
        self.surface_name = surface_name
        self.diagnostics = list(diagnostics)
        lines = [f"Contract '{surface_name}' is not usable:"]
        lines.extend(f"  {d}" for d in self.diagnostics)
        super().__init__("\n".join(lines))

    @property
    def codes(self) -> list[str]:
        return [d.code.format() for d in self.diagnostics]


class UnknownSerializationMethodError(RestContractError, RuntimeError):
    """A descriptor carried a serialization method the engine cannot dispatch on."""


class FormEncodingError(RestContractError, ValueError):
    """URL-encoded body requested for a value which is not map-shaped."""

    def __init__(self, argument: str, value_type: type):
        self.argument = argument
        self.value_type = value_type
        super().__init__(
            f"Body serialization method is URL_ENCODED, but argument '{argument}' "
            f"of type {value_type.__name__} is not a mapping"
        )


class InvalidUriError(RestContractError, ValueError):
    """The composed request URI could not be parsed."""


class ApiError(RestContractError):
    """A response status does not indicate success under the strict policy."""

    def __init__(
        self,
        method: str,
        uri: str,
        status_code: int,
        reason_phrase: str,
        headers: list[tuple[str, str]],
        content_headers: list[tuple[str, str]],
        raw_body: str | None,
        deserializer: Any = None,
    ):
        self.method = method
        self.uri = uri
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.headers = headers
        self.content_headers = content_headers
        self.raw_body = raw_body
        self._deserializer = deserializer
        super().__init__(
            f"{method} \"{uri}\" failed because response status code does not indicate "
            f"success: {status_code} ({reason_phrase})."
        )

    @property
    def status(self) -> int:
        return self.status_code

    @property
    def has_content(self) -> bool:
        return bool(self.raw_body and self.raw_body.strip())

    def deserialize_content(self, result_type: Any = None) -> Any:
        """Deserialize the raw body using the requester's response deserializer.

        Nothing is parsed until this is called, so an error body which is not
        valid for ``result_type`` only fails when the caller asks for it.
        """
        if self._deserializer is None:
            raise RestContractError("No response deserializer is available for this error")
        return self._deserializer(self.raw_body, result_type)
