"""AccountApplicationService: account opening, points, ratings.

Write operations commit on success and roll back on any exception.
Read operations (balance, ledger) run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.rp_account.application.ledger import PointsLedger
from src.rp_account.application.schemas import (
    AccountResponse,
    BalanceResponse,
    LedgerResponse,
    PointsEntryItem,
    RatingResponse,
    RedeemResponse,
    cursor_decode,
    cursor_encode,
)
from src.rp_account.domain.models import Account
from src.rp_account.domain.repository import AccountRepositoryProtocol
from src.rp_account.infrastructure.persistence import AccountRepository
from src.rp_common.change_feed import ChangeFeed, get_change_feed
from src.rp_common.enums import AccountRole, ChangeAction, ReferenceType
from src.rp_common.errors import (
    AccountExistsError,
    AccountNotFoundError,
    InvalidAmountError,
    UnauthorizedError,
)
from src.rp_gateway.auth.session import Session

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        ledger: PointsLedger | None = None,
        feed: ChangeFeed | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._ledger = ledger or PointsLedger(self._repo)
        self._feed = feed or get_change_feed()

    async def open_account(
        self,
        db: AsyncSession,
        account_id: str,
        role: AccountRole,
        display_name: str,
        region: str,
    ) -> AccountResponse:
        """Provision the account for an authenticated subject.

        Individuals start with the welcome credit; enterprises start at zero
        and unverified.
        """
        try:
            account = await self._repo.create_account(
                db,
                Account(
                    id=account_id,
                    role=role.value,
                    display_name=display_name,
                    region=region,
                    balance=0,
                ),
            )
            if account is None:
                raise AccountExistsError(account_id)
            if role == AccountRole.INDIVIDUAL and settings.WELCOME_CREDIT_UNITS > 0:
                await self._ledger.credit(
                    db, account_id, settings.WELCOME_CREDIT_UNITS, "Account Created",
                    ReferenceType.ACCOUNT, account_id,
                )
                account.balance += settings.WELCOME_CREDIT_UNITS
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Opened %s account %s", role.value, account_id)
        self._feed.notify("accounts", account_id, ChangeAction.CREATED, account_id)
        return AccountResponse.from_domain(account)

    async def get_account(self, db: AsyncSession, account_id: str) -> AccountResponse:
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return AccountResponse.from_domain(account)

    async def get_balance(self, db: AsyncSession, session: Session) -> BalanceResponse:
        balance = await self._ledger.balance(db, session.account_id)
        return BalanceResponse.from_units(session.account_id, balance)

    async def earn(
        self, db: AsyncSession, session: Session, amount: int, description: str
    ) -> PointsEntryItem:
        try:
            entry = await self._ledger.credit(db, session.account_id, amount, description)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self._feed.notify("accounts", session.account_id, ChangeAction.UPDATED, session.account_id)
        return PointsEntryItem.from_domain(entry)

    async def redeem(
        self, db: AsyncSession, session: Session, amount: int, description: str
    ) -> RedeemResponse:
        """Insufficient balance is reported as redeemed=False, not as an error."""
        try:
            entry = await self._ledger.debit_entry(db, session.account_id, amount, description)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        balance = await self._ledger.balance(db, session.account_id)
        if entry is None:
            return RedeemResponse(redeemed=False, balance=balance)
        self._feed.notify("accounts", session.account_id, ChangeAction.UPDATED, session.account_id)
        return RedeemResponse(
            redeemed=True, balance=balance, entry=PointsEntryItem.from_domain(entry)
        )

    async def record_personal_action(
        self, db: AsyncSession, session: Session, action: str
    ) -> PointsEntryItem:
        """Flat reward for handling surplus food at home (compost, freeze)."""
        try:
            entry = await self._ledger.credit(
                db, session.account_id, settings.PERSONAL_ACTION_CREDIT_UNITS,
                f"Action: {action}", ReferenceType.ACTION, None,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self._feed.notify("accounts", session.account_id, ChangeAction.UPDATED, session.account_id)
        return PointsEntryItem.from_domain(entry)

    async def submit_rating(
        self, db: AsyncSession, session: Session, target_id: str, score: int
    ) -> RatingResponse:
        if target_id == session.account_id:
            raise UnauthorizedError("accounts cannot rate themselves")
        if not 1 <= score <= 5:
            raise InvalidAmountError(f"rating must be between 1 and 5, got {score}")
        try:
            account = await self._repo.record_rating(db, target_id, score)
            if account is None:
                raise AccountNotFoundError(target_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return RatingResponse(
            account_id=account.id,
            rating=round(account.rating, 2),
            rating_count=account.rating_count,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        session: Session,
        cursor: str | None,
        limit: int,
        kind: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(
            db, session.account_id, cursor_id, limit + 1, kind
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        items = [PointsEntryItem.from_domain(e) for e in page]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def verify_ledger(self, db: AsyncSession, session: Session) -> list[str]:
        return await self._ledger.verify_balance(db, session.account_id)
