"""Global enums: must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class AccountRole(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    ENTERPRISE = "ENTERPRISE"


class PointsEntryKind(str, Enum):
    EARNED = "EARNED"
    REDEEMED = "REDEEMED"


class ReferenceType(str, Enum):
    """What a points entry was booked against."""
    ACCOUNT = "ACCOUNT"
    LISTING = "LISTING"
    TRADE_OFFER = "TRADE_OFFER"
    B2B_LISTING = "B2B_LISTING"
    ACTION = "ACTION"
    MANUAL = "MANUAL"


class ListingStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    CLAIMED = "CLAIMED"
    COMPLETED = "COMPLETED"


class TransportMode(str, Enum):
    WALK = "walk"
    BIKE = "bike"
    TRANSIT = "transit"
    CAR = "car"


class TradeOfferStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class B2BListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXHAUSTED = "EXHAUSTED"


class ChangeAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
