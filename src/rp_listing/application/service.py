"""ListingLedger: post, claim, complete and chat on surplus food listings.

Lifecycle: AVAILABLE -> CLAIMED -> COMPLETED (terminal). Each transition runs
under the listing's lock and is written as a compare-and-set, so a second
claim on the same listing fails with InvalidStateError and leaves the first
claimant untouched. Write operations commit on success and roll back on any
exception; change-feed notifications go out only after commit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.change_feed import ChangeFeed, get_change_feed
from src.rp_common.credits import calculate_carbon_saved, credits_to_display
from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import ChangeAction, ListingStatus, TransportMode
from src.rp_common.errors import (
    EmptyMessageError,
    InvalidAmountError,
    InvalidStateError,
    ListingNotFoundError,
    UnauthorizedError,
)
from src.rp_common.id_generator import generate_id
from src.rp_common.locks import KeyedLocks, listing_locks
from src.rp_gateway.auth.session import Session
from src.rp_listing.application.claim_verifier import ClaimVerifier
from src.rp_listing.application.schemas import (
    ClaimResponse,
    CompletionResponse,
    ListingListResponse,
    ListingResponse,
    MessageItem,
    PickupAnalysisItem,
    PickupAnalysisResponse,
    ThreadResponse,
)
from src.rp_listing.domain import pickup
from src.rp_listing.domain.claim_code import draw_unique_code
from src.rp_listing.domain.models import ChatMessage, Listing, ListingDetails
from src.rp_listing.domain.repository import ListingRepositoryProtocol
from src.rp_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)

_OPEN_STATUSES = [ListingStatus.AVAILABLE.value, ListingStatus.CLAIMED.value]
_DONE_STATUSES = [ListingStatus.COMPLETED.value]


class ListingLedger:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        verifier: ClaimVerifier | None = None,
        feed: ChangeFeed | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._feed = feed or get_change_feed()
        self._locks = locks or listing_locks
        self._verifier = verifier or ClaimVerifier(self._repo, feed=self._feed, locks=self._locks)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def post(
        self,
        db: AsyncSession,
        session: Session,
        details: ListingDetails,
        declared_baseline_kg: float | None,
        chosen_action_kg: float = 0.0,
    ) -> ListingResponse:
        """Create an AVAILABLE listing with its carbon saving fixed now.

        A missing or zero baseline from the estimator is tolerated; the
        per-serving waste floor applies instead.
        """
        if details.quantity <= 0:
            raise InvalidAmountError(f"quantity must be positive, got {details.quantity}")
        if chosen_action_kg < 0:
            raise InvalidAmountError(f"chosen action impact must be >= 0, got {chosen_action_kg}")

        carbon_saved = calculate_carbon_saved(
            details.quantity, declared_baseline_kg, chosen_action_kg
        )
        listing = Listing(
            id=generate_id(),
            owner_id=session.account_id,
            title=details.title.strip(),
            quantity=details.quantity,
            location=details.location.strip(),
            distance=details.distance,
            carbon_saved=carbon_saved,
            image_ref=details.image_ref,
            tags=list(details.tags),
            ingredients=list(details.ingredients),
            calories_per_serving=details.calories_per_serving,
        )
        try:
            listing = await self._repo.create(db, listing)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Listing %s posted by %s: %d servings, %.2f kg saved",
            listing.id, listing.owner_id, listing.quantity, listing.carbon_saved,
        )
        self._feed.notify("listings", listing.id, ChangeAction.CREATED)
        return ListingResponse.from_domain(listing, session.account_id)

    async def claim(
        self,
        db: AsyncSession,
        session: Session,
        listing_id: str,
        pickup_method: TransportMode = TransportMode.WALK,
    ) -> ClaimResponse:
        """Claim an AVAILABLE listing and return the code to show at handoff."""
        method = TransportMode(pickup_method).value
        async with self._locks.hold(listing_id):
            try:
                listing = await self._get_or_raise(db, listing_id)
                if not listing.is_available:
                    raise InvalidStateError("listing", listing_id, listing.status, "claim")
                if listing.owner_id == session.account_id:
                    raise InvalidStateError("listing", listing_id, listing.status, "claim own")

                code = draw_unique_code(await self._repo.active_claim_codes(db))
                claimed = await self._repo.claim(
                    db, listing_id, session.account_id, code, method, utc_now()
                )
                if claimed is None:
                    current = await self._get_or_raise(db, listing_id)
                    raise InvalidStateError("listing", listing_id, current.status, "claim")
                await self._repo.append_message(
                    db,
                    ChatMessage(
                        id=generate_id(),
                        listing_id=listing_id,
                        sender_id=session.account_id,
                        text=f"System: I've claimed this item via {method}.",
                        is_system=True,
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Listing %s claimed by %s via %s", listing_id, session.account_id, method)
        self._feed.notify("listings", listing_id, ChangeAction.UPDATED, claimed.owner_id)
        self._feed.notify("listings", listing_id, ChangeAction.UPDATED, session.account_id)
        self._feed.notify("messages", listing_id, ChangeAction.CREATED, listing_id)
        return ClaimResponse(listing_id=listing_id, claim_code=code, pickup_method=method)

    async def complete(
        self, db: AsyncSession, session: Session, code: str
    ) -> CompletionResponse:
        """The giver enters the code shown by the receiver."""
        completion = await self._verifier.complete(db, code, session.account_id)
        return CompletionResponse(
            listing=ListingResponse.from_domain(completion.listing, session.account_id),
            credits_each=completion.credits_each,
            credits_each_display=credits_to_display(completion.credits_each),
        )

    async def delete(self, db: AsyncSession, session: Session, listing_id: str) -> None:
        """Owner-only; allowed in any status and takes the chat thread with it."""
        async with self._locks.hold(listing_id):
            try:
                listing = await self._get_or_raise(db, listing_id)
                if listing.owner_id != session.account_id:
                    raise UnauthorizedError("only the owner may delete a listing")
                await self._repo.delete(db, listing_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Listing %s deleted by owner %s", listing_id, session.account_id)
        self._feed.notify("listings", listing_id, ChangeAction.DELETED)

    async def send_message(
        self, db: AsyncSession, session: Session, listing_id: str, text: str
    ) -> MessageItem:
        """Anyone may ask about an available listing; after a claim the thread
        is private to owner and claimant."""
        text = text.strip()
        if not text:
            raise EmptyMessageError()
        try:
            listing = await self._get_or_raise(db, listing_id)
            _check_thread_access(listing, session.account_id)
            message = await self._repo.append_message(
                db,
                ChatMessage(
                    id=generate_id(),
                    listing_id=listing_id,
                    sender_id=session.account_id,
                    text=text,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self._feed.notify("messages", listing_id, ChangeAction.CREATED, listing_id)
        return MessageItem.from_domain(message)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_listing(
        self, db: AsyncSession, session: Session, listing_id: str
    ) -> ListingResponse:
        listing = await self._get_or_raise(db, listing_id)
        return ListingResponse.from_domain(listing, session.account_id)

    async def get_thread(
        self, db: AsyncSession, session: Session, listing_id: str
    ) -> ThreadResponse:
        listing = await self._get_or_raise(db, listing_id)
        _check_thread_access(listing, session.account_id)
        messages = await self._repo.list_messages(db, listing_id)
        return ThreadResponse(
            listing_id=listing_id,
            messages=[MessageItem.from_domain(m) for m in messages],
        )

    async def browse(
        self,
        db: AsyncSession,
        session: Session,
        location: str | None = None,
        limit: int = 50,
    ) -> ListingListResponse:
        """Available listings the viewer could claim, newest first."""
        query = location.strip() if location else None
        listings = await self._repo.list_available(db, session.account_id, query, limit)
        return self._to_list(listings, session)

    async def my_active(self, db: AsyncSession, session: Session) -> ListingListResponse:
        listings = await self._repo.list_by_owner(db, session.account_id, _OPEN_STATUSES)
        return self._to_list(listings, session)

    async def my_claims(self, db: AsyncSession, session: Session) -> ListingListResponse:
        listings = await self._repo.list_by_claimant(
            db, session.account_id, [ListingStatus.CLAIMED.value]
        )
        return self._to_list(listings, session)

    async def giver_history(self, db: AsyncSession, session: Session) -> ListingListResponse:
        listings = await self._repo.list_by_owner(db, session.account_id, _DONE_STATUSES)
        return self._to_list(listings, session)

    async def receiver_history(self, db: AsyncSession, session: Session) -> ListingListResponse:
        listings = await self._repo.list_by_claimant(db, session.account_id, _DONE_STATUSES)
        return self._to_list(listings, session)

    async def pickup_analysis(
        self,
        db: AsyncSession,
        listing_id: str,
        distance_km: float | None = None,
        mode: TransportMode | None = None,
    ) -> PickupAnalysisResponse:
        """Travel emissions vs. carbon saved for one mode, or all of them."""
        listing = await self._get_or_raise(db, listing_id)
        km = distance_km if distance_km is not None else pickup.parse_distance_km(listing.distance)
        if km < 0:
            raise InvalidAmountError(f"distance must be >= 0, got {km}")
        if mode is None:
            results = pickup.compare_modes(listing.carbon_saved, km)
        else:
            results = [pickup.analyze(listing.carbon_saved, km, mode)]
        return PickupAnalysisResponse(
            listing_id=listing.id,
            carbon_saved=listing.carbon_saved,
            distance_km=km,
            options=[PickupAnalysisItem.from_domain(r) for r in results],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_or_raise(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._repo.get(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    @staticmethod
    def _to_list(listings: list[Listing], session: Session) -> ListingListResponse:
        return ListingListResponse(
            items=[ListingResponse.from_domain(x, session.account_id) for x in listings]
        )


def _check_thread_access(listing: Listing, account_id: str) -> None:
    if listing.is_available:
        return
    if not listing.is_party(account_id):
        raise UnauthorizedError("only the owner and claimant may use this thread")
