from __future__ import annotations

import pytest

from bank_identity.domain.contracts import RegistrationRequest, ViolationKind
from bank_identity.domain.errors import ValidationFailed
from bank_identity.domain.validation import collect_violations, validate_registration


def _request(**overrides) -> RegistrationRequest:
    fields = {
        "account_number": "ACC123",
        "routing_code": "ABCD0123456",
        "bank_name": "Test Bank",
        "branch": "Main",
    }
    fields.update(overrides)
    return RegistrationRequest(**fields)


def test_valid_request_produces_trimmed_draft():
    draft = validate_registration(
        _request(account_number="  ACC123 ", bank_name="Test Bank\n", city="  Pune ", address="   ")
    )
    assert draft.account_number == "ACC123"
    assert draft.bank_name == "Test Bank"
    assert draft.city == "Pune"
    assert draft.address is None
    assert draft.state_code is None


def test_empty_request_reports_every_required_field():
    violations = collect_violations(RegistrationRequest())
    assert [v.field for v in violations] == ["account_number", "routing_code", "bank_name", "branch"]
    assert all(v.kind is ViolationKind.missing for v in violations)


def test_blank_values_count_as_missing():
    violations = collect_violations(_request(branch="   ", account_number=""))
    assert {(v.field, v.kind) for v in violations} == {
        ("account_number", ViolationKind.missing),
        ("branch", ViolationKind.missing),
    }


def test_empty_bank_name_and_short_routing_code_are_both_reported():
    with pytest.raises(ValidationFailed) as excinfo:
        validate_registration(_request(bank_name="", routing_code="ABCD012345"))
    kinds = {v.field: v.kind for v in excinfo.value.violations}
    assert kinds == {
        "routing_code": ViolationKind.invalid_format,
        "bank_name": ViolationKind.missing,
    }


@pytest.mark.parametrize(
    "routing_code",
    ["abcd0123456", "ABCD1123456", "ABC00123456", "ABCD01234567", "ABCD0-23456"],
)
def test_malformed_routing_codes_are_rejected(routing_code):
    violations = collect_violations(_request(routing_code=routing_code))
    assert len(violations) == 1
    assert violations[0].field == "routing_code"
    assert violations[0].kind is ViolationKind.invalid_format


def test_missing_routing_code_is_reported_once_as_missing():
    violations = collect_violations(_request(routing_code=None))
    assert len(violations) == 1
    assert violations[0].kind is ViolationKind.missing


def test_optional_fields_accept_any_text():
    draft = validate_registration(
        _request(address="12 MG Road", city="Bengaluru 560001", state_code="KA", routing_no="560002")
    )
    assert draft.state_code == "KA"
    assert draft.routing_no == "560002"
