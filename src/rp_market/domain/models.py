"""Domain models for rp_market: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.rp_common.enums import B2BListingStatus

# Oldest vintage year accepted for a verified carbon credit batch
MIN_VINTAGE_YEAR = 1990


@dataclass
class B2BListing:
    """A batch of verified credits offered by one enterprise to others.

    remaining_amount only ever decreases; status is EXHAUSTED exactly when it
    reaches zero.
    """

    id: str
    seller_id: str
    original_amount: int
    remaining_amount: int
    price_per_unit: int
    vintage: int
    project: str
    status: str = B2BListingStatus.ACTIVE.value
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == B2BListingStatus.ACTIVE


@dataclass(frozen=True)
class B2BPurchase:
    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    amount: int
    price_per_unit: int
    total_cost: int
    vintage: int
    project: str
    retired: bool = False
    created_at: datetime | None = None
