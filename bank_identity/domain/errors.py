"""Error taxonomy for registration and credential verification."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .contracts import FieldViolation


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


class IdentityServiceError(Exception):
    """Base class for errors surfaced to API callers.

    ``kind`` is the stable tag clients switch on; ``message`` is safe to show.
    """

    kind: str = "internal_error"
    message: str = "An internal error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailed(IdentityServiceError):
    kind = "validation_failed"
    message = "The registration request is invalid."

    def __init__(self, violations: list[FieldViolation]) -> None:
        super().__init__()
        self.violations = list(violations)


class Conflict(IdentityServiceError):
    kind = "conflict"
    message = "Account number already registered."


class TemporarilyUnavailable(IdentityServiceError):
    kind = "temporarily_unavailable"
    message = "The service is temporarily unavailable. Retry later."


class CredentialIssuanceFailed(IdentityServiceError):
    """The identity was stored but no token could be signed for it.

    Retrying the registration will report a conflict; the identity id is kept
    for operators and is not part of the outward message.
    """

    kind = "internal_error"
    message = (
        "The account was registered but a credential could not be issued. "
        "Retrying registration will report a conflict."
    )

    def __init__(self, identity_id: str) -> None:
        super().__init__()
        self.identity_id = identity_id


class RejectionReason(str, Enum):
    invalid_signature = "invalid_signature"
    expired = "expired"
    malformed = "malformed"
    unknown_subject = "unknown_subject"


class TokenRejected(IdentityServiceError):
    kind = "token_rejected"

    def __init__(self, reason: RejectionReason) -> None:
        super().__init__(f"Token rejected: {reason.value}.")
        self.reason = reason


class RateLimited(IdentityServiceError):
    kind = "rate_limited"
    message = "Too many requests."


# Raised inside the core and translated by the orchestrator.


class DuplicateAccountNumber(Exception):
    """The store rejected an insert on the account number uniqueness constraint."""


class StoreUnavailable(Exception):
    """The store could not be reached or the connection failed mid-call."""


class TokenSigningError(Exception):
    """The credential issuer could not produce a signed token."""
