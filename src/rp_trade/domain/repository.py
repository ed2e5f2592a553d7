"""TradeOfferRepository Protocol: interface contract for persistence layer."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_trade.domain.models import TradeOffer


class TradeOfferRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, offer: TradeOffer) -> TradeOffer: ...

    async def get(self, db: AsyncSession, offer_id: str) -> TradeOffer | None: ...

    async def update_price(
        self, db: AsyncSession, offer_id: str, price: int
    ) -> TradeOffer | None:
        """None unless the offer was still PENDING."""
        ...

    async def resolve(
        self,
        db: AsyncSession,
        offer_id: str,
        status: str,
        account_id: str,
        resolved_at: datetime,
    ) -> TradeOffer | None:
        """PENDING -> status, recording who accepted or rejected. None if not PENDING."""
        ...

    async def list_by_enterprise(
        self, db: AsyncSession, enterprise_id: str
    ) -> list[TradeOffer]: ...

    async def list_pending_in_region(self, db: AsyncSession, region: str) -> list[TradeOffer]: ...
