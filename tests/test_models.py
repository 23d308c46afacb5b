import pytest
from pydantic import ValidationError

from rest_contract.contract.base import (
    BodySerializationMethod,
    ContractSurface,
    HeaderBinding,
    Operation,
    Parameter,
    PathBinding,
    Property,
    QueryBinding,
    RequestDeclaration,
    RequestPropertyBinding,
    SerializationMethods,
    StatusCodePolicy,
    StatusCodePolicyDeclaration,
)
from rest_contract.contract.diagnostics import Diagnostic, DiagnosticCode, ValidationReport


class TestBindings:
    def test_effective_names_fall_back_to_member_name(self):
        p = Parameter(name="user_id", bindings=[PathBinding(), QueryBinding(), RequestPropertyBinding()])
        assert p.path_name == "user_id"
        assert p.query_name == "user_id"
        assert p.request_property_key == "user_id"

    def test_declared_names_win(self):
        p = Parameter(name="user_id", bindings=[PathBinding(name="id"), QueryBinding(name="uid")])
        assert p.path_name == "id"
        assert p.query_name == "uid"

    def test_unbound_member_has_no_names(self):
        p = Parameter(name="x")
        assert p.path_name is None
        assert p.header_name is None
        assert not p.has(QueryBinding)

    def test_bindings_parse_from_dicts(self):
        p = Parameter.model_validate({"name": "x", "bindings": [{"role": "header", "name": "X-Trace"}]})
        assert isinstance(p.bindings[0], HeaderBinding)
        assert p.header_name == "X-Trace"

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            Parameter.model_validate({"name": "x", "bindings": [{"role": "cookie"}]})


class TestOperation:
    def test_method_is_upper_cased(self):
        assert RequestDeclaration(method="get").method == "GET"

    def test_request_requires_exactly_one(self):
        assert Operation(name="a").request is None
        op = Operation(name="a", requests=[RequestDeclaration(method="GET", path="x")])
        assert op.request.path == "x"

    def test_get_parameter(self):
        op = Operation(name="a", parameters=[Parameter(name="x")])
        assert op.get_parameter("x").name == "x"
        assert op.get_parameter("y") is None

    def test_serialization_overrides_are_unset_by_default(self):
        methods = SerializationMethods()
        assert methods.body is None
        assert SerializationMethods(body="url_encoded").body == BodySerializationMethod.URL_ENCODED


class TestSurface:
    def test_lookup_members(self):
        surface = ContractSurface(
            name="Api",
            operations=[Operation(name="get")],
            properties=[Property(name="key", bindings=[HeaderBinding(name="X-Key")])],
        )
        assert surface.get_operation("get").name == "get"
        assert surface.get_property("key").header_name == "X-Key"
        assert surface.get_operation("missing") is None

    def test_status_code_policy_ignores_inherited_declarations(self):
        surface = ContractSurface(name="Api", status_code_policies=[
            StatusCodePolicyDeclaration(policy=StatusCodePolicy.ALLOW_ANY, declared_on="Parent"),
        ])
        assert surface.status_code_policy is None


class TestDiagnostics:
    def test_codes_are_stable(self):
        assert DiagnosticCode.MULTIPLE_CANCELLATION_TOKEN_PARAMETERS == 1
        assert DiagnosticCode.CANCELLATION_TOKEN_MUST_HAVE_ZERO_ATTRIBUTES == 26
        assert DiagnosticCode.PARAMETER_MUST_NOT_BE_BY_REF == 30
        assert DiagnosticCode.BASE_ADDRESS_MUST_BE_ABSOLUTE == 36
        assert DiagnosticCode.QUERY_CONFLICT_WITH_RAW_QUERY_STRING == 40

    @pytest.mark.parametrize("retired", [25, 27, 28, 29, 32, 33, 34, 37, 38])
    def test_retired_numbers_are_unused(self, retired):
        with pytest.raises(ValueError):
            DiagnosticCode(retired)

    def test_format(self):
        assert DiagnosticCode.MULTIPLE_BODY_PARAMETERS.format() == "REST007"

    def test_diagnostic_str(self):
        d = Diagnostic(code=DiagnosticCode.MULTIPLE_BODY_PARAMETERS, location="Api.post(b)", message="two bodies")
        assert str(d) == "error REST007: Api.post(b): two bodies"

    def test_report_usable_only_without_errors(self):
        warning = Diagnostic(
            code=DiagnosticCode.NONE, location="Api", message="note", severity="warning",
        )
        assert ValidationReport(surface="Api", diagnostics=[warning]).is_usable
        error = Diagnostic(code=DiagnosticCode.EVENTS_NOT_ALLOWED, location="Api", message="no")
        report = ValidationReport(surface="Api", diagnostics=[warning, error])
        assert not report.is_usable
        assert report.errors == [error]
