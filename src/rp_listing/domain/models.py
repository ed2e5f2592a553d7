"""Domain models for rp_listing: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.rp_common.enums import ListingStatus


@dataclass
class Listing:
    id: str
    owner_id: str
    title: str
    quantity: int                 # servings
    location: str
    distance: str                 # declared, free text e.g. "0.5km"
    carbon_saved: float           # kg CO2e, fixed at post time
    status: str = ListingStatus.AVAILABLE.value
    image_ref: str | None = None
    tags: list[str] = field(default_factory=list)
    ingredients: list[str] = field(default_factory=list)
    calories_per_serving: int = 0
    claimant_id: str | None = None
    claim_code: str | None = None
    pickup_method: str | None = None
    created_at: datetime | None = None
    claimed_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.status == ListingStatus.AVAILABLE

    @property
    def is_claimed(self) -> bool:
        return self.status == ListingStatus.CLAIMED

    @property
    def is_completed(self) -> bool:
        return self.status == ListingStatus.COMPLETED

    def is_party(self, account_id: str) -> bool:
        return account_id in (self.owner_id, self.claimant_id)


@dataclass
class ListingDetails:
    """Owner-supplied fields for a new listing."""

    title: str
    quantity: int
    location: str
    distance: str = "1km"
    image_ref: str | None = None
    tags: list[str] = field(default_factory=list)
    ingredients: list[str] = field(default_factory=list)
    calories_per_serving: int = 0


@dataclass(frozen=True)
class ChatMessage:
    id: str
    listing_id: str
    sender_id: str
    text: str
    is_system: bool = False
    created_at: datetime | None = None
