"""B2BMarket: enterprise-to-enterprise trading of verified credit batches.

A buy is one transaction: debit buyer, credit seller, decrement the batch
and record the purchase. Any failure rolls all of it back.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.application.ledger import PointsLedger
from src.rp_common.change_feed import ChangeFeed, get_change_feed
from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import ChangeAction, ReferenceType
from src.rp_common.errors import (
    B2BListingNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
)
from src.rp_common.id_generator import generate_id
from src.rp_common.locks import KeyedLocks, b2b_listing_locks
from src.rp_gateway.auth.session import Session
from src.rp_market.application.schemas import (
    B2BListingListResponse,
    B2BListingResponse,
    HoldingsResponse,
    PurchaseItem,
    PurchaseResponse,
)
from src.rp_market.domain.models import MIN_VINTAGE_YEAR, B2BListing, B2BPurchase
from src.rp_market.domain.repository import B2BMarketRepositoryProtocol
from src.rp_market.infrastructure.persistence import B2BMarketRepository

logger = logging.getLogger(__name__)


class B2BMarket:
    def __init__(
        self,
        repo: B2BMarketRepositoryProtocol | None = None,
        ledger: PointsLedger | None = None,
        feed: ChangeFeed | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: B2BMarketRepositoryProtocol = repo or B2BMarketRepository()
        self._ledger = ledger or PointsLedger()
        self._feed = feed or get_change_feed()
        self._locks = locks or b2b_listing_locks

    async def list_credits(
        self,
        db: AsyncSession,
        session: Session,
        amount: int,
        price_per_unit: int,
        vintage: int,
        project: str,
    ) -> B2BListingResponse:
        session.require_enterprise("list credits on the B2B market")
        if amount <= 0:
            raise InvalidAmountError(f"amount must be positive, got {amount}")
        if price_per_unit <= 0:
            raise InvalidAmountError(f"price must be positive, got {price_per_unit}")
        if not MIN_VINTAGE_YEAR <= vintage <= utc_now().year:
            raise InvalidAmountError(f"vintage {vintage} is not a plausible year")
        try:
            listing = await self._repo.create_listing(
                db,
                B2BListing(
                    id=generate_id(),
                    seller_id=session.account_id,
                    original_amount=amount,
                    remaining_amount=amount,
                    price_per_unit=price_per_unit,
                    vintage=vintage,
                    project=project.strip(),
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "B2B listing %s: %d credits at %d by %s (%s, %d)",
            listing.id, amount, price_per_unit, session.account_id, listing.project, vintage,
        )
        self._feed.notify("b2b_listings", listing.id, ChangeAction.CREATED)
        return B2BListingResponse.from_domain(listing)

    async def buy(
        self,
        db: AsyncSession,
        session: Session,
        listing_id: str,
        amount: int,
        retire: bool = False,
    ) -> PurchaseResponse:
        """Buy `amount` credits from an active batch.

        Raises:
            InvalidAmountError: amount <= 0 or more than remains.
            InvalidStateError: own listing, or the batch is exhausted.
            InsufficientFundsError: buyer cannot cover amount * price.
        """
        session.require_enterprise("buy credits on the B2B market")
        if amount <= 0:
            raise InvalidAmountError(f"amount must be positive, got {amount}")
        async with self._locks.hold(listing_id):
            try:
                listing = await self._get_or_raise(db, listing_id)
                if listing.seller_id == session.account_id:
                    raise InvalidStateError("b2b listing", listing_id, listing.status, "buy own")
                if not listing.is_active:
                    raise InvalidStateError("b2b listing", listing_id, listing.status, "buy")
                if amount > listing.remaining_amount:
                    raise InvalidAmountError(
                        f"requested {amount}, only {listing.remaining_amount} remaining"
                    )

                total_cost = amount * listing.price_per_unit
                paid = await self._ledger.transfer(
                    db,
                    session.account_id,
                    listing.seller_id,
                    total_cost,
                    f"B2B Credits: {amount} x {listing.project} ({listing.vintage})",
                    ReferenceType.B2B_LISTING,
                    listing_id,
                )
                if not paid:
                    available = await self._ledger.balance(db, session.account_id)
                    raise InsufficientFundsError(total_cost, available)

                filled = await self._repo.fill(db, listing_id, amount)
                if filled is None:
                    current = await self._get_or_raise(db, listing_id)
                    raise InvalidAmountError(
                        f"requested {amount}, only {current.remaining_amount} remaining"
                    )
                purchase = await self._repo.record_purchase(
                    db,
                    B2BPurchase(
                        id=generate_id(),
                        listing_id=listing_id,
                        buyer_id=session.account_id,
                        seller_id=listing.seller_id,
                        amount=amount,
                        price_per_unit=listing.price_per_unit,
                        total_cost=total_cost,
                        vintage=listing.vintage,
                        project=listing.project,
                        retired=retire,
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "B2B listing %s: %s bought %d (retire=%s), %d remaining",
            listing_id, session.account_id, amount, retire, filled.remaining_amount,
        )
        self._feed.notify("b2b_listings", listing_id, ChangeAction.UPDATED)
        self._feed.notify("accounts", session.account_id, ChangeAction.UPDATED, session.account_id)
        self._feed.notify("accounts", listing.seller_id, ChangeAction.UPDATED, listing.seller_id)
        return PurchaseResponse(
            purchase=PurchaseItem.from_domain(purchase),
            listing=B2BListingResponse.from_domain(filled),
        )

    async def active_listings(self, db: AsyncSession) -> B2BListingListResponse:
        listings = await self._repo.list_active(db)
        return B2BListingListResponse(
            items=[B2BListingResponse.from_domain(x) for x in listings]
        )

    async def holdings(self, db: AsyncSession, session: Session) -> HoldingsResponse:
        purchases = await self._repo.list_purchases(db, session.account_id)
        return HoldingsResponse(
            active_amount=sum(p.amount for p in purchases if not p.retired),
            retired_amount=sum(p.amount for p in purchases if p.retired),
            purchases=[PurchaseItem.from_domain(p) for p in purchases],
        )

    async def _get_or_raise(self, db: AsyncSession, listing_id: str) -> B2BListing:
        listing = await self._repo.get_listing(db, listing_id)
        if listing is None:
            raise B2BListingNotFoundError(listing_id)
        return listing
