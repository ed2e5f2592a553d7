"""Pydantic schemas for rp_listing API."""

from pydantic import BaseModel, Field

from src.rp_common.datetime_utils import to_iso
from src.rp_common.enums import TransportMode
from src.rp_listing.domain.models import ChatMessage, Listing, ListingDetails
from src.rp_listing.domain.pickup import PickupAnalysis


def kg_to_display(kg: float) -> str:
    """2.4 -> '2.40 kg CO2e'."""
    return f"{kg:,.2f} kg CO2e"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PostListingRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0, description="Number of servings")
    location: str = Field(..., min_length=1, max_length=255)
    distance: str = Field("1km", max_length=32, description="Declared distance, e.g. '0.5km'")
    image_ref: str | None = Field(None, max_length=500)
    tags: list[str] = Field(default_factory=list, max_length=20)
    ingredients: list[str] = Field(default_factory=list, max_length=50)
    calories_per_serving: int = Field(0, ge=0)
    declared_baseline_kg: float | None = Field(
        None, ge=0, description="Estimated waste-case emissions, kg CO2e"
    )
    chosen_action_kg: float = Field(
        0.0, ge=0, description="Emissions of the chosen redistribution action, kg CO2e"
    )

    def to_details(self) -> ListingDetails:
        return ListingDetails(
            title=self.title,
            quantity=self.quantity,
            location=self.location,
            distance=self.distance,
            image_ref=self.image_ref,
            tags=list(self.tags),
            ingredients=list(self.ingredients),
            calories_per_serving=self.calories_per_serving,
        )


class ClaimRequest(BaseModel):
    pickup_method: TransportMode = TransportMode.WALK


class CompleteRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=8)


class SendMessageRequest(BaseModel):
    text: str = Field(..., max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ListingResponse(BaseModel):
    listing_id: str
    owner_id: str
    title: str
    quantity: int
    location: str
    distance: str
    carbon_saved: float
    carbon_saved_display: str
    status: str
    image_ref: str | None
    tags: list[str]
    ingredients: list[str]
    calories_per_serving: int
    claimant_id: str | None
    claim_code: str | None
    pickup_method: str | None
    created_at: str | None
    claimed_at: str | None
    completed_at: str | None

    @classmethod
    def from_domain(cls, listing: Listing, viewer_id: str | None) -> "ListingResponse":
        """The claim code is only shown to the claimant, who presents it at handoff."""
        show_code = viewer_id is not None and viewer_id == listing.claimant_id
        return cls(
            listing_id=listing.id,
            owner_id=listing.owner_id,
            title=listing.title,
            quantity=listing.quantity,
            location=listing.location,
            distance=listing.distance,
            carbon_saved=listing.carbon_saved,
            carbon_saved_display=kg_to_display(listing.carbon_saved),
            status=listing.status,
            image_ref=listing.image_ref,
            tags=listing.tags,
            ingredients=listing.ingredients,
            calories_per_serving=listing.calories_per_serving,
            claimant_id=listing.claimant_id,
            claim_code=listing.claim_code if show_code else None,
            pickup_method=listing.pickup_method,
            created_at=to_iso(listing.created_at),
            claimed_at=to_iso(listing.claimed_at),
            completed_at=to_iso(listing.completed_at),
        )


class ListingListResponse(BaseModel):
    items: list[ListingResponse]


class ClaimResponse(BaseModel):
    listing_id: str
    claim_code: str
    pickup_method: str


class CompletionResponse(BaseModel):
    listing: ListingResponse
    credits_each: int
    credits_each_display: str


class MessageItem(BaseModel):
    id: str
    sender_id: str
    text: str
    is_system: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, message: ChatMessage) -> "MessageItem":
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            text=message.text,
            is_system=message.is_system,
            created_at=to_iso(message.created_at),
        )


class ThreadResponse(BaseModel):
    listing_id: str
    messages: list[MessageItem]


class PickupAnalysisItem(BaseModel):
    mode: str
    travel_emissions: float
    net_impact: float
    is_worth_it: bool

    @classmethod
    def from_domain(cls, analysis: PickupAnalysis) -> "PickupAnalysisItem":
        return cls(
            mode=analysis.mode.value,
            travel_emissions=round(analysis.travel_emissions, 3),
            net_impact=round(analysis.net_impact, 3),
            is_worth_it=analysis.is_worth_it,
        )


class PickupAnalysisResponse(BaseModel):
    listing_id: str
    carbon_saved: float
    distance_km: float
    options: list[PickupAnalysisItem]
