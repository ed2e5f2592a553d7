"""Pydantic schemas for rp_trade API."""

from pydantic import BaseModel, Field

from src.rp_common.credits import credits_to_display
from src.rp_common.datetime_utils import to_iso
from src.rp_trade.domain.models import TradeOffer


class BroadcastOfferRequest(BaseModel):
    region: str = Field(..., min_length=1, max_length=255)
    price: int = Field(..., gt=0, description="Credit units paid to the accepting individual")


class UpdatePriceRequest(BaseModel):
    price: int = Field(..., gt=0)


class TradeOfferResponse(BaseModel):
    offer_id: str
    enterprise_id: str
    region: str
    price: int
    price_display: str
    status: str
    accepted_by: str | None
    rejected_by: str | None
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, offer: TradeOffer) -> "TradeOfferResponse":
        return cls(
            offer_id=offer.id,
            enterprise_id=offer.enterprise_id,
            region=offer.region,
            price=offer.price,
            price_display=credits_to_display(offer.price),
            status=offer.status,
            accepted_by=offer.accepted_by,
            rejected_by=offer.rejected_by,
            created_at=to_iso(offer.created_at),
            resolved_at=to_iso(offer.resolved_at),
        )


class TradeOfferListResponse(BaseModel):
    items: list[TradeOfferResponse]
