"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True)
class RegistrationRequest:
    """Raw registration fields as received from the transport layer."""

    account_number: str | None = None
    routing_code: str | None = None
    bank_name: str | None = None
    branch: str | None = None
    address: str | None = None
    city: str | None = None
    state_code: str | None = None
    routing_no: str | None = None


@dataclass(slots=True)
class IdentityDraft:
    """Validated, trimmed inputs required to create an identity."""

    account_number: str
    routing_code: str
    bank_name: str
    branch: str
    address: str | None = None
    city: str | None = None
    state_code: str | None = None
    routing_no: str | None = None


class ViolationKind(str, Enum):
    missing = "missing"
    invalid_format = "invalid_format"


@dataclass(slots=True, frozen=True)
class FieldViolation:
    field: str
    kind: ViolationKind
    message: str
