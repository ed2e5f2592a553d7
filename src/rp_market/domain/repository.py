"""B2BMarketRepository Protocol: interface contract for persistence layer."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_market.domain.models import B2BListing, B2BPurchase


class B2BMarketRepositoryProtocol(Protocol):
    async def create_listing(self, db: AsyncSession, listing: B2BListing) -> B2BListing: ...

    async def get_listing(self, db: AsyncSession, listing_id: str) -> B2BListing | None: ...

    async def fill(self, db: AsyncSession, listing_id: str, amount: int) -> B2BListing | None:
        """Decrement remaining_amount by amount if it still covers it.

        Sets EXHAUSTED when the result is zero. None if the guard failed.
        """
        ...

    async def list_active(self, db: AsyncSession) -> list[B2BListing]: ...

    async def record_purchase(self, db: AsyncSession, purchase: B2BPurchase) -> B2BPurchase: ...

    async def list_purchases(self, db: AsyncSession, buyer_id: str) -> list[B2BPurchase]: ...
