"""TradeOfferNegotiator: enterprises bid for individuals' credits by region.

An enterprise broadcasts a price to a region; any individual in that region
may accept it (the enterprise pays the individual `price` credits) or reject
it. The first resolution wins. Settlement and the status change commit in
one transaction; if the enterprise cannot pay, nothing changes and the offer
stays open.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.application.ledger import PointsLedger
from src.rp_common.change_feed import ChangeFeed, get_change_feed
from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import ChangeAction, ReferenceType, TradeOfferStatus
from src.rp_common.errors import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    OfferNotFoundError,
    UnauthorizedError,
)
from src.rp_common.id_generator import generate_id
from src.rp_common.locks import KeyedLocks, offer_locks
from src.rp_gateway.auth.session import Session
from src.rp_trade.application.schemas import TradeOfferListResponse, TradeOfferResponse
from src.rp_trade.domain.models import TradeOffer
from src.rp_trade.domain.repository import TradeOfferRepositoryProtocol
from src.rp_trade.infrastructure.persistence import TradeOfferRepository

logger = logging.getLogger(__name__)


class TradeOfferNegotiator:
    def __init__(
        self,
        repo: TradeOfferRepositoryProtocol | None = None,
        ledger: PointsLedger | None = None,
        feed: ChangeFeed | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: TradeOfferRepositoryProtocol = repo or TradeOfferRepository()
        self._ledger = ledger or PointsLedger()
        self._feed = feed or get_change_feed()
        self._locks = locks or offer_locks

    async def broadcast(
        self, db: AsyncSession, session: Session, region: str, price: int
    ) -> TradeOfferResponse:
        session.require_enterprise("broadcast trade offers")
        _check_price(price)
        region = region.strip()
        try:
            offer = await self._repo.create(
                db,
                TradeOffer(
                    id=generate_id(),
                    enterprise_id=session.account_id,
                    region=region,
                    price=price,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Offer %s broadcast by %s to %s at %d", offer.id, offer.enterprise_id, region, price)
        self._feed.notify("offers", offer.id, ChangeAction.CREATED, region)
        return TradeOfferResponse.from_domain(offer)

    async def update_price(
        self, db: AsyncSession, session: Session, offer_id: str, price: int
    ) -> TradeOfferResponse:
        _check_price(price)
        async with self._locks.hold(offer_id):
            try:
                offer = await self._get_or_raise(db, offer_id)
                if offer.enterprise_id != session.account_id:
                    raise UnauthorizedError("only the broadcasting enterprise may reprice an offer")
                if not offer.is_pending:
                    raise InvalidStateError("offer", offer_id, offer.status, "reprice")
                updated = await self._repo.update_price(db, offer_id, price)
                if updated is None:
                    current = await self._get_or_raise(db, offer_id)
                    raise InvalidStateError("offer", offer_id, current.status, "reprice")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Offer %s repriced %d -> %d", offer_id, offer.price, price)
        self._feed.notify("offers", offer_id, ChangeAction.UPDATED, updated.region)
        return TradeOfferResponse.from_domain(updated)

    async def accept(
        self, db: AsyncSession, session: Session, offer_id: str
    ) -> TradeOfferResponse:
        """Individual sells `price` credits' worth of impact to the enterprise.

        Raises:
            InsufficientFundsError: enterprise balance < price; offer stays PENDING.
        """
        session.require_individual("accept trade offers")
        async with self._locks.hold(offer_id):
            try:
                offer = await self._get_or_raise(db, offer_id)
                if not offer.in_region(session.region):
                    raise UnauthorizedError("offer is not open to your region")
                if not offer.is_pending:
                    raise InvalidStateError("offer", offer_id, offer.status, "accept")

                paid = await self._ledger.transfer(
                    db,
                    offer.enterprise_id,
                    session.account_id,
                    offer.price,
                    f"Trade Offer {offer_id}",
                    ReferenceType.TRADE_OFFER,
                    offer_id,
                )
                if not paid:
                    available = await self._ledger.balance(db, offer.enterprise_id)
                    raise InsufficientFundsError(offer.price, available)

                accepted = await self._repo.resolve(
                    db, offer_id, TradeOfferStatus.ACCEPTED.value, session.account_id, utc_now()
                )
                if accepted is None:
                    current = await self._get_or_raise(db, offer_id)
                    raise InvalidStateError("offer", offer_id, current.status, "accept")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Offer %s accepted by %s: %d credits from %s",
            offer_id, session.account_id, accepted.price, accepted.enterprise_id,
        )
        self._feed.notify("offers", offer_id, ChangeAction.UPDATED, accepted.region)
        self._feed.notify("accounts", accepted.enterprise_id, ChangeAction.UPDATED, accepted.enterprise_id)
        self._feed.notify("accounts", session.account_id, ChangeAction.UPDATED, session.account_id)
        return TradeOfferResponse.from_domain(accepted)

    async def reject(
        self, db: AsyncSession, session: Session, offer_id: str
    ) -> TradeOfferResponse:
        """The broadcasting enterprise withdraws, or an individual in the region declines."""
        async with self._locks.hold(offer_id):
            try:
                offer = await self._get_or_raise(db, offer_id)
                if session.is_enterprise:
                    if offer.enterprise_id != session.account_id:
                        raise UnauthorizedError("only the broadcasting enterprise may withdraw an offer")
                elif not offer.in_region(session.region):
                    raise UnauthorizedError("offer is not open to your region")
                if not offer.is_pending:
                    raise InvalidStateError("offer", offer_id, offer.status, "reject")
                rejected = await self._repo.resolve(
                    db, offer_id, TradeOfferStatus.REJECTED.value, session.account_id, utc_now()
                )
                if rejected is None:
                    current = await self._get_or_raise(db, offer_id)
                    raise InvalidStateError("offer", offer_id, current.status, "reject")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Offer %s rejected by %s", offer_id, session.account_id)
        self._feed.notify("offers", offer_id, ChangeAction.UPDATED, rejected.region)
        return TradeOfferResponse.from_domain(rejected)

    async def list_offers(self, db: AsyncSession, session: Session) -> TradeOfferListResponse:
        """Enterprises see everything they broadcast, accepted bids included;
        individuals see what is still pending in their region."""
        if session.is_enterprise:
            offers = await self._repo.list_by_enterprise(db, session.account_id)
        else:
            offers = await self._repo.list_pending_in_region(db, session.region)
        return TradeOfferListResponse(items=[TradeOfferResponse.from_domain(o) for o in offers])

    async def _get_or_raise(self, db: AsyncSession, offer_id: str) -> TradeOffer:
        offer = await self._repo.get(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer


def _check_price(price: int) -> None:
    if price <= 0:
        raise InvalidAmountError(f"price must be positive, got {price}")
