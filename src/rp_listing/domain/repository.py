"""ListingRepository Protocol: interface contract for persistence layer.

Status changes are compare-and-set: claim() only succeeds from AVAILABLE and
complete() only from CLAIMED with a matching code. A None return means the
guard did not hold and nothing was written.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_listing.domain.models import ChatMessage, Listing


class ListingRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, listing: Listing) -> Listing: ...

    async def get(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def claim(
        self,
        db: AsyncSession,
        listing_id: str,
        claimant_id: str,
        code: str,
        pickup_method: str,
        claimed_at: datetime,
    ) -> Listing | None: ...

    async def complete(
        self,
        db: AsyncSession,
        listing_id: str,
        code: str,
        completed_at: datetime,
    ) -> Listing | None: ...

    async def delete(self, db: AsyncSession, listing_id: str) -> bool: ...

    async def find_claimed_by_code(
        self, db: AsyncSession, code: str, owner_id: str | None
    ) -> list[Listing]:
        """Claimed listings holding this code, oldest claim first."""
        ...

    async def active_claim_codes(self, db: AsyncSession) -> set[str]: ...

    async def list_available(
        self,
        db: AsyncSession,
        exclude_owner_id: str | None,
        location_query: str | None,
        limit: int,
    ) -> list[Listing]: ...

    async def list_by_owner(
        self, db: AsyncSession, owner_id: str, statuses: list[str]
    ) -> list[Listing]: ...

    async def list_by_claimant(
        self, db: AsyncSession, claimant_id: str, statuses: list[str]
    ) -> list[Listing]: ...

    async def append_message(self, db: AsyncSession, message: ChatMessage) -> ChatMessage: ...

    async def list_messages(self, db: AsyncSession, listing_id: str) -> list[ChatMessage]: ...
