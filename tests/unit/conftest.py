"""Unit-test fixtures: in-memory repositories conforming to the repository Protocols.

They mirror the SQL guards (compare-and-set on status, guarded decrements)
and hand out copies, so a service holding a returned object cannot mutate
stored state behind the repository's back. Reads and debits yield to the event
loop once, as a database round trip would, so gathered calls interleave.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from itertools import count
from unittest.mock import AsyncMock

import pytest

from src.rp_account.application.ledger import PointsLedger
from src.rp_account.domain.models import Account, PointsEntry
from src.rp_common.change_feed import ChangeFeed
from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import (
    B2BListingStatus,
    ListingStatus,
    PointsEntryKind,
    TradeOfferStatus,
)
from src.rp_common.locks import KeyedLocks
from src.rp_gateway.auth.session import Session
from src.rp_listing.domain.models import ChatMessage, Listing
from src.rp_market.domain.models import B2BListing, B2BPurchase
from src.rp_trade.domain.models import TradeOffer


class FakeAccountRepository:
    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.entries: list[PointsEntry] = []
        self._ids = count(1)
        self.row_locks: list[list[str]] = []

    def seed(self, account_id: str, role: str = "INDIVIDUAL", region: str = "Austin, TX",
             balance: int = 0) -> Account:
        """Insert an account whose opening balance is backed by an entry."""
        self.accounts[account_id] = Account(
            id=account_id, role=role, display_name=account_id, region=region, balance=0,
            created_at=utc_now(),
        )
        if balance:
            self._apply(account_id, PointsEntryKind.EARNED, balance, "Seed", None, None)
        return replace(self.accounts[account_id])

    def balance_of(self, account_id: str) -> int:
        return self.accounts[account_id].balance

    def entries_for(self, account_id: str) -> list[PointsEntry]:
        return [e for e in self.entries if e.account_id == account_id]

    async def get_account(self, db, account_id):
        account = self.accounts.get(account_id)
        return replace(account) if account else None

    async def create_account(self, db, account):
        if account.id in self.accounts:
            return None
        self.accounts[account.id] = replace(account, balance=0, created_at=utc_now())
        return replace(self.accounts[account.id])

    async def credit(self, db, account_id, amount, description, ref_type, ref_id):
        if account_id not in self.accounts:
            return None
        return self._apply(account_id, PointsEntryKind.EARNED, amount, description, ref_type, ref_id)

    async def debit(self, db, account_id, amount, description, ref_type, ref_id):
        await asyncio.sleep(0)
        account = self.accounts.get(account_id)
        if account is None or account.balance < amount:
            return None
        return self._apply(
            account_id, PointsEntryKind.REDEEMED, -amount, description, ref_type, ref_id
        )

    async def lock_accounts(self, db, account_ids):
        self.row_locks.append(list(account_ids))

    async def list_entries(self, db, account_id, cursor_id, limit, kind):
        rows = [
            e for e in reversed(self.entries)
            if e.account_id == account_id
            and (cursor_id is None or e.id < cursor_id)
            and (kind is None or e.kind == kind)
        ]
        return rows[:limit]

    async def sum_entries(self, db, account_id):
        return sum(e.amount for e in self.entries if e.account_id == account_id)

    async def record_rating(self, db, account_id, score):
        account = self.accounts.get(account_id)
        if account is None:
            return None
        account.rating = (account.rating * account.rating_count + score) / (account.rating_count + 1)
        account.rating_count += 1
        return replace(account)

    def _apply(self, account_id, kind, signed_amount, description, ref_type, ref_id):
        account = self.accounts[account_id]
        account.balance += signed_amount
        entry = PointsEntry(
            id=next(self._ids),
            account_id=account_id,
            kind=kind.value,
            amount=signed_amount,
            balance_after=account.balance,
            description=description,
            reference_type=ref_type,
            reference_id=ref_id,
            created_at=utc_now(),
        )
        self.entries.append(entry)
        return replace(account), entry


class FakeListingRepository:
    def __init__(self) -> None:
        self.listings: dict[str, Listing] = {}
        self.messages: list[ChatMessage] = []

    async def create(self, db, listing):
        stored = replace(listing, status=ListingStatus.AVAILABLE.value, created_at=utc_now())
        self.listings[listing.id] = stored
        return replace(stored)

    async def get(self, db, listing_id):
        await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        return replace(listing) if listing else None

    async def claim(self, db, listing_id, claimant_id, code, pickup_method, claimed_at):
        listing = self.listings.get(listing_id)
        if listing is None or listing.status != ListingStatus.AVAILABLE:
            return None
        if listing.owner_id == claimant_id:
            return None
        listing.status = ListingStatus.CLAIMED.value
        listing.claimant_id = claimant_id
        listing.claim_code = code
        listing.pickup_method = pickup_method
        listing.claimed_at = claimed_at
        return replace(listing)

    async def complete(self, db, listing_id, code, completed_at):
        listing = self.listings.get(listing_id)
        if listing is None or listing.status != ListingStatus.CLAIMED or listing.claim_code != code:
            return None
        listing.status = ListingStatus.COMPLETED.value
        listing.claim_code = None
        listing.completed_at = completed_at
        return replace(listing)

    async def delete(self, db, listing_id):
        self.messages = [m for m in self.messages if m.listing_id != listing_id]
        return self.listings.pop(listing_id, None) is not None

    async def find_claimed_by_code(self, db, code, owner_id):
        hits = [
            x for x in self.listings.values()
            if x.status == ListingStatus.CLAIMED and x.claim_code == code
            and (owner_id is None or x.owner_id == owner_id)
        ]
        hits.sort(key=lambda x: (x.claimed_at or datetime.min, x.id))
        return [replace(x) for x in hits]

    async def active_claim_codes(self, db):
        return {
            x.claim_code for x in self.listings.values()
            if x.status == ListingStatus.CLAIMED and x.claim_code
        }

    async def list_available(self, db, exclude_owner_id, location_query, limit):
        rows = [
            x for x in self.listings.values()
            if x.status == ListingStatus.AVAILABLE
            and (exclude_owner_id is None or x.owner_id != exclude_owner_id)
            and (not location_query or location_query.lower() in x.location.lower())
        ]
        return [replace(x) for x in reversed(rows)][:limit]

    async def list_by_owner(self, db, owner_id, statuses):
        return [
            replace(x) for x in self.listings.values()
            if x.owner_id == owner_id and x.status in statuses
        ]

    async def list_by_claimant(self, db, claimant_id, statuses):
        return [
            replace(x) for x in self.listings.values()
            if x.claimant_id == claimant_id and x.status in statuses
        ]

    async def append_message(self, db, message):
        stored = replace(message, created_at=utc_now())
        self.messages.append(stored)
        return stored

    async def list_messages(self, db, listing_id):
        return [m for m in self.messages if m.listing_id == listing_id]


class FakeTradeOfferRepository:
    def __init__(self) -> None:
        self.offers: dict[str, TradeOffer] = {}

    async def create(self, db, offer):
        now = utc_now()
        stored = replace(offer, status=TradeOfferStatus.PENDING.value, created_at=now, updated_at=now)
        self.offers[offer.id] = stored
        return replace(stored)

    async def get(self, db, offer_id):
        await asyncio.sleep(0)
        offer = self.offers.get(offer_id)
        return replace(offer) if offer else None

    async def update_price(self, db, offer_id, price):
        offer = self.offers.get(offer_id)
        if offer is None or offer.status != TradeOfferStatus.PENDING:
            return None
        offer.price = price
        offer.updated_at = utc_now()
        return replace(offer)

    async def resolve(self, db, offer_id, status, account_id, resolved_at):
        offer = self.offers.get(offer_id)
        if offer is None or offer.status != TradeOfferStatus.PENDING:
            return None
        offer.status = status
        if status == TradeOfferStatus.ACCEPTED:
            offer.accepted_by = account_id
        else:
            offer.rejected_by = account_id
        offer.resolved_at = resolved_at
        return replace(offer)

    async def list_by_enterprise(self, db, enterprise_id):
        return [replace(o) for o in self.offers.values() if o.enterprise_id == enterprise_id]

    async def list_pending_in_region(self, db, region):
        return [
            replace(o) for o in self.offers.values()
            if o.status == TradeOfferStatus.PENDING and o.in_region(region)
        ]


class FakeB2BMarketRepository:
    def __init__(self) -> None:
        self.listings: dict[str, B2BListing] = {}
        self.purchases: list[B2BPurchase] = []

    async def create_listing(self, db, listing):
        stored = replace(
            listing,
            remaining_amount=listing.original_amount,
            status=B2BListingStatus.ACTIVE.value,
            created_at=utc_now(),
        )
        self.listings[listing.id] = stored
        return replace(stored)

    async def get_listing(self, db, listing_id):
        await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        return replace(listing) if listing else None

    async def fill(self, db, listing_id, amount):
        listing = self.listings.get(listing_id)
        if listing is None or listing.status != B2BListingStatus.ACTIVE:
            return None
        if listing.remaining_amount < amount:
            return None
        listing.remaining_amount -= amount
        if listing.remaining_amount == 0:
            listing.status = B2BListingStatus.EXHAUSTED.value
        return replace(listing)

    async def list_active(self, db):
        return [
            replace(x) for x in self.listings.values() if x.status == B2BListingStatus.ACTIVE
        ]

    async def record_purchase(self, db, purchase):
        stored = replace(purchase, created_at=utc_now())
        self.purchases.append(stored)
        return stored

    async def list_purchases(self, db, buyer_id):
        return [p for p in self.purchases if p.buyer_id == buyer_id]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> AsyncMock:
    """Stand-in AsyncSession: services only await commit/rollback on it."""
    return AsyncMock()


@pytest.fixture
def accounts() -> FakeAccountRepository:
    repo = FakeAccountRepository()
    repo.seed("giver", region="Austin, TX")
    repo.seed("receiver", region="Austin, TX")
    repo.seed("stranger", region="Austin, TX")
    repo.seed("far-away", region="Denver, CO")
    repo.seed("acme", role="ENTERPRISE", region="Austin, TX", balance=500)
    repo.seed("globex", role="ENTERPRISE", region="Denver, CO", balance=5000)
    return repo


@pytest.fixture
def sessions(accounts: FakeAccountRepository) -> dict[str, Session]:
    return {account_id: Session.for_account(a) for account_id, a in accounts.accounts.items()}


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def ledger(accounts: FakeAccountRepository) -> PointsLedger:
    return PointsLedger(accounts, KeyedLocks())


@pytest.fixture
def listing_repo() -> FakeListingRepository:
    return FakeListingRepository()


@pytest.fixture
def offer_repo() -> FakeTradeOfferRepository:
    return FakeTradeOfferRepository()


@pytest.fixture
def market_repo() -> FakeB2BMarketRepository:
    return FakeB2BMarketRepository()
