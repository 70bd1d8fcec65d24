"""Field-level validation of registration requests.

Every check here is local and side-effect free. All violations for a request
are collected so callers can report them in one response.
"""

from __future__ import annotations

import re

from .contracts import FieldViolation, IdentityDraft, RegistrationRequest, ViolationKind
from .errors import ValidationFailed

# IFSC shape: four bank letters, a literal zero, six branch characters.
ROUTING_CODE_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")

REQUIRED_FIELDS = ("account_number", "routing_code", "bank_name", "branch")
OPTIONAL_FIELDS = ("address", "city", "state_code", "routing_no")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def collect_violations(request: RegistrationRequest) -> list[FieldViolation]:
    """Return every violation found in ``request``, in field order."""
    violations: list[FieldViolation] = []
    for name in REQUIRED_FIELDS:
        value = _clean(getattr(request, name))
        if value is None:
            violations.append(
                FieldViolation(name, ViolationKind.missing, f"{name} is required.")
            )
        elif name == "routing_code" and not ROUTING_CODE_PATTERN.match(value):
            violations.append(
                FieldViolation(
                    name,
                    ViolationKind.invalid_format,
                    "routing_code must be 4 letters, a 0, then 6 letters or digits.",
                )
            )
    return violations


def validate_registration(request: RegistrationRequest) -> IdentityDraft:
    """Return a trimmed ``IdentityDraft`` or raise ``ValidationFailed`` listing all problems."""
    violations = collect_violations(request)
    if violations:
        raise ValidationFailed(violations)
    values = {name: _clean(getattr(request, name)) for name in REQUIRED_FIELDS + OPTIONAL_FIELDS}
    return IdentityDraft(**values)
