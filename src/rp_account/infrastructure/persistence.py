"""AccountRepository: concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING and
append the matching points_entries row in the same statement sequence.
A result of 0 rows from a guarded UPDATE means the business constraint
(sufficient balance) was violated.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.domain.models import Account, PointsEntry
from src.rp_common.enums import PointsEntryKind
from src.rp_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_ACCOUNT_COLUMNS = """
    id, role, display_name, region, balance, rating, rating_count,
    verified, created_at, updated_at
"""

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE id = :account_id
""")

_INSERT_ACCOUNT_SQL = text(f"""
    INSERT INTO accounts (id, role, display_name, region, balance, rating, rating_count, verified)
    VALUES (:id, :role, :display_name, :region, 0, :rating, 0, :verified)
    ON CONFLICT (id) DO NOTHING
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance + :amount
    WHERE id = :account_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance - :amount
    WHERE id = :account_id AND balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_LOCK_ACCOUNTS_SQL = text("""
    SELECT id
    FROM accounts
    WHERE id = ANY(:account_ids)
    ORDER BY id
    FOR UPDATE
""")

_RECORD_RATING_SQL = text(f"""
    UPDATE accounts
    SET rating = (rating * rating_count + :score) / (rating_count + 1),
        rating_count = rating_count + 1
    WHERE id = :account_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: points_entries (append-only; no UPDATE or DELETE statement exists)
# ---------------------------------------------------------------------------

_INSERT_ENTRY_SQL = text("""
    INSERT INTO points_entries
        (account_id, kind, amount, balance_after,
         description, reference_type, reference_id)
    VALUES
        (:account_id, :kind, :amount, :balance_after,
         :description, :reference_type, :reference_id)
    RETURNING id, account_id, kind, amount, balance_after,
              description, reference_type, reference_id, created_at
""")

_LIST_ENTRIES_SQL = text("""
    SELECT id, account_id, kind, amount, balance_after,
           description, reference_type, reference_id, created_at
    FROM points_entries
    WHERE account_id = :account_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:kind AS TEXT) IS NULL OR kind = CAST(:kind AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_SUM_ENTRIES_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM points_entries
    WHERE account_id = :account_id
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=row.id,  # type: ignore[attr-defined]
        role=row.role,  # type: ignore[attr-defined]
        display_name=row.display_name,  # type: ignore[attr-defined]
        region=row.region,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        rating=float(row.rating),  # type: ignore[attr-defined]
        rating_count=row.rating_count,  # type: ignore[attr-defined]
        verified=row.verified,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> PointsEntry:
    return PointsEntry(
        id=row.id,  # type: ignore[attr-defined]
        account_id=row.account_id,  # type: ignore[attr-defined]
        kind=row.kind,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"account_id": account_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def create_account(self, db: AsyncSession, account: Account) -> Account | None:
        result = await db.execute(
            _INSERT_ACCOUNT_SQL,
            {
                "id": account.id,
                "role": account.role,
                "display_name": account.display_name,
                "region": account.region,
                "rating": account.rating,
                "verified": account.verified,
            },
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> tuple[Account, PointsEntry] | None:
        result = await db.execute(_CREDIT_SQL, {"account_id": account_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            return None
        account = _row_to_account(row)
        entry = await self._append_entry(
            db, account, PointsEntryKind.EARNED, amount, description, ref_type, ref_id
        )
        return account, entry

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> tuple[Account, PointsEntry] | None:
        result = await db.execute(_DEBIT_SQL, {"account_id": account_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            return None
        account = _row_to_account(row)
        entry = await self._append_entry(
            db, account, PointsEntryKind.REDEEMED, -amount, description, ref_type, ref_id
        )
        return account, entry

    async def _append_entry(
        self,
        db: AsyncSession,
        account: Account,
        kind: PointsEntryKind,
        signed_amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> PointsEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "account_id": account.id,
                "kind": kind.value,
                "amount": signed_amount,
                "balance_after": account.balance,
                "description": description,
                "reference_type": ref_type,
                "reference_id": ref_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Points entry insert returned no rows")
        return _row_to_entry(row)

    async def list_entries(
        self,
        db: AsyncSession,
        account_id: str,
        cursor_id: int | None,
        limit: int,
        kind: str | None,
    ) -> list[PointsEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "account_id": account_id,
                "cursor_id": cursor_id,
                "kind": kind,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def lock_accounts(self, db: AsyncSession, account_ids: list[str]) -> None:
        """Row-lock the accounts for the rest of the transaction, lowest id first."""
        await db.execute(_LOCK_ACCOUNTS_SQL, {"account_ids": sorted(set(account_ids))})

    async def sum_entries(self, db: AsyncSession, account_id: str) -> int:
        result = await db.execute(_SUM_ENTRIES_SQL, {"account_id": account_id})
        return int(result.scalar_one())

    async def record_rating(
        self, db: AsyncSession, account_id: str, score: int
    ) -> Account | None:
        result = await db.execute(
            _RECORD_RATING_SQL, {"account_id": account_id, "score": score}
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None
