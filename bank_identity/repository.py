"""Database repository for registered account identities."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool, PoolTimeout

from .domain.account import AccountIdentity
from .domain.contracts import IdentityDraft
from .domain.errors import DuplicateAccountNumber, StoreUnavailable

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_CONSTRAINT = "account_identities_account_number_key"

_COLUMNS = (
    "id, account_number, routing_code, bank_name, branch, "
    "address, city, state_code, routing_no, created_at"
)


class IdentityRepository:
    """Postgres-backed identity persistence.

    Uniqueness of ``account_number`` is left entirely to the table's unique
    constraint; inserts are never preceded by a lookup.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def create(self, draft: IdentityDraft) -> AccountIdentity:
        """Insert a new identity in a single statement and return the stored row.

        Raises ``DuplicateAccountNumber`` when the account number is taken and
        ``StoreUnavailable`` when the database cannot be reached.
        """
        identity_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO account_identities ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            identity_id,
                            draft.account_number,
                            draft.routing_code,
                            draft.bank_name,
                            draft.branch,
                            draft.address,
                            draft.city,
                            draft.state_code,
                            draft.routing_no,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            diag = getattr(exc, "diag", None)
            constraint = getattr(diag, "constraint_name", None)
            if constraint not in (None, ACCOUNT_NUMBER_CONSTRAINT):
                raise
            raise DuplicateAccountNumber() from exc
        except (psycopg.OperationalError, PoolTimeout) as exc:
            logger.warning("identity store unreachable during insert: %s", type(exc).__name__)
            raise StoreUnavailable() from exc
        return self._map_record(row)

    def get(self, identity_id: str) -> AccountIdentity | None:
        """Fetch an identity by id or return ``None``."""
        try:
            uuid.UUID(identity_id)
        except ValueError:
            return None
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"SELECT {_COLUMNS} FROM account_identities WHERE id = %s",
                        (identity_id,),
                    )
                    row = cur.fetchone()
        except (psycopg.OperationalError, PoolTimeout) as exc:
            logger.warning("identity store unreachable during lookup: %s", type(exc).__name__)
            raise StoreUnavailable() from exc
        if not row:
            return None
        return self._map_record(row)

    def ping(self) -> bool:
        """Return ``True`` when a trivial query succeeds."""
        try:
            with self._pool.connection() as conn:
                conn.execute("SELECT 1")
        except (psycopg.OperationalError, PoolTimeout):
            return False
        return True

    def _map_record(self, row: tuple) -> AccountIdentity:
        """Convert a raw database tuple into the domain ``AccountIdentity``."""
        return AccountIdentity(
            id=str(row[0]),
            account_number=row[1],
            routing_code=row[2],
            bank_name=row[3],
            branch=row[4],
            address=row[5],
            city=row[6],
            state_code=row[7],
            routing_no=row[8],
            created_at=row[9],
        )
