"""Pydantic schemas for rp_market API."""

from pydantic import BaseModel, Field

from src.rp_common.credits import credits_to_display
from src.rp_common.datetime_utils import to_iso
from src.rp_market.domain.models import MIN_VINTAGE_YEAR, B2BListing, B2BPurchase


class CreateB2BListingRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Credits offered")
    price_per_unit: int = Field(..., gt=0)
    vintage: int = Field(..., ge=MIN_VINTAGE_YEAR)
    project: str = Field(..., min_length=1, max_length=255)


class BuyRequest(BaseModel):
    amount: int = Field(..., gt=0)
    retire: bool = Field(False, description="Retire the credits immediately on purchase")


class B2BListingResponse(BaseModel):
    listing_id: str
    seller_id: str
    original_amount: int
    remaining_amount: int
    price_per_unit: int
    price_display: str
    vintage: int
    project: str
    status: str
    created_at: str | None

    @classmethod
    def from_domain(cls, listing: B2BListing) -> "B2BListingResponse":
        return cls(
            listing_id=listing.id,
            seller_id=listing.seller_id,
            original_amount=listing.original_amount,
            remaining_amount=listing.remaining_amount,
            price_per_unit=listing.price_per_unit,
            price_display=credits_to_display(listing.price_per_unit),
            vintage=listing.vintage,
            project=listing.project,
            status=listing.status,
            created_at=to_iso(listing.created_at),
        )


class B2BListingListResponse(BaseModel):
    items: list[B2BListingResponse]


class PurchaseItem(BaseModel):
    purchase_id: str
    listing_id: str
    seller_id: str
    amount: int
    price_per_unit: int
    total_cost: int
    total_cost_display: str
    vintage: int
    project: str
    retired: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, purchase: B2BPurchase) -> "PurchaseItem":
        return cls(
            purchase_id=purchase.id,
            listing_id=purchase.listing_id,
            seller_id=purchase.seller_id,
            amount=purchase.amount,
            price_per_unit=purchase.price_per_unit,
            total_cost=purchase.total_cost,
            total_cost_display=credits_to_display(purchase.total_cost),
            vintage=purchase.vintage,
            project=purchase.project,
            retired=purchase.retired,
            created_at=to_iso(purchase.created_at),
        )


class PurchaseResponse(BaseModel):
    purchase: PurchaseItem
    listing: B2BListingResponse


class HoldingsResponse(BaseModel):
    active_amount: int
    retired_amount: int
    purchases: list[PurchaseItem]
