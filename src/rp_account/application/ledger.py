"""PointsLedger: append-only credit log per account.

Every balance change goes through credit() or debit(), which update the
running balance and append the entry in one repository call while holding
the account's lock. Two-party settlements hold both accounts' locks, and
take both rows FOR UPDATE in id order, for their full duration, so opposite
settlements between the same pair queue instead of deadlocking. Nothing here commits: settlement-bearing callers own the
transaction so that a state transition and its ledger entries land together.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.domain.models import PointsEntry
from src.rp_account.domain.repository import AccountRepositoryProtocol
from src.rp_account.infrastructure.persistence import AccountRepository
from src.rp_common.credits import calculate_payout
from src.rp_common.enums import ReferenceType
from src.rp_common.errors import AccountNotFoundError, InvalidAmountError
from src.rp_common.locks import KeyedLocks, account_locks

logger = logging.getLogger(__name__)


class PointsLedger:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._locks = locks or account_locks

    async def credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None = ReferenceType.MANUAL,
        ref_id: str | None = None,
    ) -> PointsEntry:
        _check_amount(amount)
        async with self._locks.hold(account_id):
            return await self._credit(db, account_id, amount, description, ref_type, ref_id)

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None = ReferenceType.MANUAL,
        ref_id: str | None = None,
    ) -> bool:
        """Returns False, without mutating anything, when amount > balance."""
        return await self.debit_entry(
            db, account_id, amount, description, ref_type, ref_id
        ) is not None

    async def debit_entry(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None = ReferenceType.MANUAL,
        ref_id: str | None = None,
    ) -> PointsEntry | None:
        _check_amount(amount)
        async with self._locks.hold(account_id):
            return await self._debit(db, account_id, amount, description, ref_type, ref_id)

    async def balance(self, db: AsyncSession, account_id: str) -> int:
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account.balance

    async def pay_completion(
        self,
        db: AsyncSession,
        listing_id: str,
        title: str,
        carbon_saved_kg: float,
        owner_id: str,
        claimant_id: str,
    ) -> int:
        """Credit both parties of a verified pickup. Returns the per-party split.

        The odd unit of an odd total is forfeited rather than awarded.
        """
        total, split = calculate_payout(carbon_saved_kg)
        async with self._locks.hold(owner_id, claimant_id):
            await self._repo.lock_accounts(db, [owner_id, claimant_id])
            await self._credit(
                db, claimant_id, split, f"Verified Pickup: {title} (50% Share)",
                ReferenceType.LISTING, listing_id,
            )
            await self._credit(
                db, owner_id, split, f"Food Rescued: {title} (50% Share)",
                ReferenceType.LISTING, listing_id,
            )
        logger.info(
            "Listing %s payout: total=%d split=%d forfeited=%d",
            listing_id, total, split, total - 2 * split,
        )
        return split

    async def transfer(
        self,
        db: AsyncSession,
        payer_id: str,
        payee_id: str,
        amount: int,
        description: str,
        ref_type: str,
        ref_id: str,
    ) -> bool:
        """Debit payer then credit payee. False if the payer cannot cover it.

        Both accounts are locked, in id order, before either row is touched.
        On False nothing has been written; the caller decides how to surface it.
        """
        _check_amount(amount)
        async with self._locks.hold(payer_id, payee_id):
            await self._repo.lock_accounts(db, [payer_id, payee_id])
            if await self._debit(db, payer_id, amount, description, ref_type, ref_id) is None:
                return False
            await self._credit(db, payee_id, amount, description, ref_type, ref_id)
        return True

    async def _credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> PointsEntry:
        result = await self._repo.credit(
            db, account_id, amount, description, _ref(ref_type), ref_id
        )
        if result is None:
            raise AccountNotFoundError(account_id)
        _, entry = result
        logger.info("Credited %d to %s: %s", amount, account_id, description)
        return entry

    async def _debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        description: str,
        ref_type: str | None,
        ref_id: str | None,
    ) -> PointsEntry | None:
        result = await self._repo.debit(
            db, account_id, amount, description, _ref(ref_type), ref_id
        )
        if result is None:
            if await self._repo.get_account(db, account_id) is None:
                raise AccountNotFoundError(account_id)
            logger.info("Debit of %d refused for %s: insufficient balance", amount, account_id)
            return None
        _, entry = result
        logger.info("Debited %d from %s: %s", amount, account_id, description)
        return entry

    async def verify_balance(self, db: AsyncSession, account_id: str) -> list[str]:
        """Check balance == sum(entries). Returns a list of violation strings."""
        violations: list[str] = []
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        total = await self._repo.sum_entries(db, account_id)
        if total != account.balance:
            msg = (
                f"Ledger invariant violated for {account_id}: "
                f"balance={account.balance} != sum(entries)={total}"
            )
            violations.append(msg)
            logger.error(msg)
        return violations


def _check_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount}")


def _ref(ref_type: str | None) -> str | None:
    return ref_type.value if isinstance(ref_type, ReferenceType) else ref_type
