from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class AccountIdentity:
    """Registered bank-account holder; immutable once stored."""

    id: str
    account_number: str
    routing_code: str
    bank_name: str
    branch: str
    created_at: datetime
    address: str | None = None
    city: str | None = None
    state_code: str | None = None
    routing_no: str | None = None


def mask_account_number(account_number: str) -> str:
    """Hide all but the last four characters of an account number."""
    if len(account_number) > 4:
        return "*" * (len(account_number) - 4) + account_number[-4:]
    return "****"
