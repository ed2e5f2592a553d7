"""Domain models for rp_trade: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.rp_common.enums import TradeOfferStatus


@dataclass
class TradeOffer:
    """An enterprise's standing price for credits from individuals in a region.

    PENDING -> ACCEPTED | REJECTED; both outcomes are terminal. accepted_by
    is the individual whose bid settled the offer.
    """

    id: str
    enterprise_id: str
    region: str
    price: int                       # credit units paid to the accepting individual
    status: str = TradeOfferStatus.PENDING.value
    accepted_by: str | None = None
    rejected_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == TradeOfferStatus.PENDING

    def in_region(self, region: str) -> bool:
        return self.region.strip().casefold() == region.strip().casefold()
