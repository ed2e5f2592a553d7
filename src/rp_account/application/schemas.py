"""Pydantic schemas and cursor utilities for rp_account API."""

import base64
import json

from pydantic import BaseModel, Field

from src.rp_account.domain.models import Account, PointsEntry
from src.rp_common.credits import credits_to_display
from src.rp_common.enums import AccountRole

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OpenAccountRequest(BaseModel):
    role: AccountRole = AccountRole.INDIVIDUAL
    display_name: str = Field(..., min_length=1, max_length=120)
    region: str = Field(..., min_length=1, max_length=255)


class EarnRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Credit units to earn")
    description: str = Field(..., min_length=1, max_length=500)


class RedeemRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Credit units to redeem")
    description: str = Field(..., min_length=1, max_length=500)


class RatingRequest(BaseModel):
    account_id: str
    score: int = Field(..., ge=1, le=5)


class PersonalActionRequest(BaseModel):
    action: str = Field(..., min_length=1, max_length=120, description="e.g. Compost, Freeze")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    account_id: str
    role: str
    display_name: str
    region: str
    balance: int
    balance_display: str
    rating: float
    rating_count: int
    verified: bool

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.id,
            role=account.role,
            display_name=account.display_name,
            region=account.region,
            balance=account.balance,
            balance_display=credits_to_display(account.balance),
            rating=round(account.rating, 2),
            rating_count=account.rating_count,
            verified=account.verified,
        )


class BalanceResponse(BaseModel):
    account_id: str
    balance: int
    balance_display: str

    @classmethod
    def from_units(cls, account_id: str, balance: int) -> "BalanceResponse":
        return cls(
            account_id=account_id,
            balance=balance,
            balance_display=credits_to_display(balance),
        )


class PointsEntryItem(BaseModel):
    id: int
    kind: str
    amount: int
    amount_display: str
    balance_after: int
    description: str
    reference_type: str | None
    reference_id: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, entry: PointsEntry) -> "PointsEntryItem":
        return cls(
            id=entry.id,
            kind=entry.kind,
            amount=entry.amount,
            amount_display=credits_to_display(entry.amount),
            balance_after=entry.balance_after,
            description=entry.description,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            created_at=entry.created_at.isoformat() if entry.created_at else "",
        )


class LedgerResponse(BaseModel):
    items: list[PointsEntryItem]
    next_cursor: str | None
    has_more: bool


class RedeemResponse(BaseModel):
    redeemed: bool
    balance: int
    entry: PointsEntryItem | None = None


class RatingResponse(BaseModel):
    account_id: str
    rating: float
    rating_count: int
