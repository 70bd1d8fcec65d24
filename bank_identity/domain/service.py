"""Registration service orchestrating validation, persistence, and token issuance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .account import AccountIdentity, mask_account_number
from .contracts import IdentityDraft, RegistrationRequest
from .errors import (
    Conflict,
    CredentialIssuanceFailed,
    DuplicateAccountNumber,
    RejectionReason,
    StoreUnavailable,
    TemporarilyUnavailable,
    TokenRejected,
    TokenSigningError,
)
from .validation import validate_registration
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    def create(self, draft: IdentityDraft) -> AccountIdentity: ...

    def get(self, identity_id: str) -> AccountIdentity | None: ...


@dataclass(slots=True)
class Registration:
    """A stored identity together with the bearer token issued for it."""

    identity: AccountIdentity
    token: str
    expires_in: int


class RegistrationService:
    """Identity workflows backed by Postgres storage."""

    def __init__(self, repository: IdentityStore, issuer: TokenIssuer) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._issuer = issuer

    def register(self, request: RegistrationRequest) -> Registration:
        """Validate, persist and issue a credential for a new identity.

        Validation errors propagate as ``ValidationFailed`` before the store is
        touched. Store errors become ``Conflict`` or ``TemporarilyUnavailable``.
        A signing failure after the insert is reported as
        ``CredentialIssuanceFailed``; the stored row is kept.
        """
        draft = validate_registration(request)
        masked = mask_account_number(draft.account_number)

        try:
            identity = self._repository.create(draft)
        except DuplicateAccountNumber as exc:
            logger.warning("registration conflict for account %s", masked)
            raise Conflict() from exc
        except StoreUnavailable as exc:
            logger.warning("registration for account %s failed: store unavailable", masked)
            raise TemporarilyUnavailable() from exc

        try:
            token = self._issuer.issue(identity.id)
        except TokenSigningError as exc:
            logger.error(
                "identity %s stored but credential issuance failed", identity.id, exc_info=True
            )
            raise CredentialIssuanceFailed(identity.id) from exc

        logger.info("registered identity %s", identity.id)
        return Registration(identity=identity, token=token, expires_in=self._issuer.lifetime_seconds)

    def verify_token(self, token: str) -> str:
        """Return the subject of a valid token or raise ``TokenRejected``."""
        try:
            return self._issuer.verify(token)
        except TokenRejected as exc:
            logger.info("token rejected: %s", exc.reason.value)
            raise

    def resolve_identity(self, token: str) -> AccountIdentity:
        """Verify ``token`` and load the identity it names."""
        subject = self.verify_token(token)
        try:
            identity = self._repository.get(subject)
        except StoreUnavailable as exc:
            raise TemporarilyUnavailable() from exc
        if identity is None:
            logger.info("token subject %s no longer resolves", subject)
            raise TokenRejected(RejectionReason.unknown_subject)
        return identity
