"""Repository Protocol: dependency inversion for testability.

Unit tests inject a fake or mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.domain.models import Account, PointsEntry


class AccountRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None: ...

    async def create_account(self, db: AsyncSession, account: Account) -> Account | None:
        """Insert the account row. Returns None if the id is already taken."""
        ...

    async def credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> tuple[Account, PointsEntry] | None:
        """Add amount and append an EARNED entry. None if the account is missing."""
        ...

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> tuple[Account, PointsEntry] | None:
        """Subtract amount and append a REDEEMED entry.

        None (and no mutation) if the balance is below amount.
        """
        ...

    async def lock_accounts(self, db: AsyncSession, account_ids: list[str]) -> None:
        """Take row locks on every account in ascending id order."""
        ...

    async def list_entries(
        self,
        db: AsyncSession,
        account_id: str,
        cursor_id: int | None,
        limit: int,
        kind: str | None,
    ) -> list[PointsEntry]: ...

    async def sum_entries(self, db: AsyncSession, account_id: str) -> int: ...

    async def record_rating(
        self, db: AsyncSession, account_id: str, score: int
    ) -> Account | None: ...
