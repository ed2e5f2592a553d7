"""Domain models for rp_account: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.rp_common.enums import AccountRole


@dataclass
class Account:
    id: str
    role: str                # AccountRole value
    display_name: str
    region: str              # location string used to scope trade offers
    balance: int             # credit units, always == sum of points entries
    rating: float = 5.0
    rating_count: int = 0
    verified: bool = False   # enterprise KYC flag
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_enterprise(self) -> bool:
        return self.role == AccountRole.ENTERPRISE


@dataclass(frozen=True)
class PointsEntry:
    id: int                  # BIGSERIAL, strictly increasing per insert
    account_id: str
    kind: str                # PointsEntryKind value
    amount: int              # signed: positive=earned, negative=redeemed
    balance_after: int       # balance snapshot after this entry
    description: str
    reference_type: str | None = None
    reference_id: str | None = None
    created_at: datetime | None = None
