"""Diagnostic codes and the report produced by the validator.

Codes are stable: tooling and tests match on the numeric value (rendered as
``REST001`` etc). Retired numbers (25, 27-29, 32-34, 37, 38) are never reused.
"""

from enum import Enum, IntEnum

from pydantic import BaseModel

from rest_contract.errors import ContractValidationError


class DiagnosticCode(IntEnum):
    NONE = 0
    MULTIPLE_CANCELLATION_TOKEN_PARAMETERS = 1
    MISSING_PATH_PROPERTY_FOR_BASE_PATH_PLACEHOLDER = 2
    MISSING_PATH_PROPERTY_OR_PARAMETER_FOR_PLACEHOLDER = 3
    MISSING_PLACEHOLDER_FOR_PATH_PARAMETER = 4
    MULTIPLE_PATH_PROPERTIES_FOR_KEY = 5
    MULTIPLE_PATH_PARAMETERS_FOR_KEY = 6
    MULTIPLE_BODY_PARAMETERS = 7
    HEADER_ON_INTERFACE_MUST_HAVE_VALUE = 8
    HEADER_PARAMETER_MUST_NOT_HAVE_VALUE = 9
    HEADER_MUST_NOT_HAVE_COLON_IN_NAME = 10
    PROPERTY_MUST_BE_READ_WRITE = 11
    HEADER_PROPERTY_WITH_VALUE_MUST_BE_NULLABLE = 12
    QUERY_MAP_PARAMETER_IS_NOT_A_DICTIONARY = 13
    ALLOW_ANY_STATUS_CODE_NOT_ALLOWED_ON_PARENT_INTERFACE = 14
    EVENTS_NOT_ALLOWED = 15
    PROPERTY_MUST_BE_READ_ONLY = 16
    MULTIPLE_REQUESTER_PROPERTIES = 17
    METHOD_MUST_HAVE_REQUEST_ATTRIBUTE = 18
    METHOD_MUST_HAVE_VALID_RETURN_TYPE = 19
    PROPERTY_MUST_HAVE_ONE_ATTRIBUTE = 20
    REQUESTER_PROPERTY_MUST_HAVE_ZERO_ATTRIBUTES = 21
    MULTIPLE_REQUEST_PROPERTIES_FOR_KEY = 22
    REQUEST_PROPERTY_PARAMETER_DUPLICATES_PROPERTY_FOR_KEY = 23
    MULTIPLE_REQUEST_PROPERTY_PARAMETERS_FOR_KEY = 24
    CANCELLATION_TOKEN_MUST_HAVE_ZERO_ATTRIBUTES = 26
    PARAMETER_MUST_NOT_BE_BY_REF = 30
    INTERFACE_TYPE_MUST_BE_ACCESSIBLE = 31
    MISSING_PATH_PROPERTY_FOR_BASE_ADDRESS_PLACEHOLDER = 35
    BASE_ADDRESS_MUST_BE_ABSOLUTE = 36
    METHOD_MUST_HAVE_ONE_REQUEST_ATTRIBUTE = 39
    QUERY_CONFLICT_WITH_RAW_QUERY_STRING = 40

    def format(self) -> str:
        return f"REST{self.value:03d}"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Diagnostic(BaseModel):
    code: DiagnosticCode
    message: str
    location: str  # e.g. "UsersApi.get_user(user_id)"
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        return f"{self.severity.value} {self.code.format()}: {self.location}: {self.message}"


class ValidationReport(BaseModel):
    """Every diagnostic found for one surface."""

    surface: str
    diagnostics: list[Diagnostic] = []

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def is_usable(self) -> bool:
        return not self.errors

    @property
    def codes(self) -> list[DiagnosticCode]:
        return [d.code for d in self.diagnostics]

    def raise_for_errors(self) -> None:
        if not self.is_usable:
            raise ContractValidationError(self.surface, self.errors)
