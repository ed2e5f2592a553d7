"""ClaimVerifier: turns a shown claim code into a completed pickup.

The code the receiver shows is the only proof of handoff. A match flips the
listing CLAIMED -> COMPLETED (compare-and-set, code cleared) and pays both
parties in the same transaction; a miss never reveals why it missed.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.application.ledger import PointsLedger
from src.rp_common.change_feed import ChangeFeed, get_change_feed
from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import ChangeAction
from src.rp_common.errors import CodeNotFoundError
from src.rp_common.locks import KeyedLocks, listing_locks
from src.rp_listing.domain.claim_code import is_well_formed
from src.rp_listing.domain.models import Listing
from src.rp_listing.domain.repository import ListingRepositoryProtocol
from src.rp_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    listing: Listing
    credits_each: int


class ClaimVerifier:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        ledger: PointsLedger | None = None,
        feed: ChangeFeed | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._ledger = ledger or PointsLedger()
        self._feed = feed or get_change_feed()
        self._locks = locks or listing_locks

    async def complete(
        self, db: AsyncSession, code: str, requester_id: str | None = None
    ) -> Completion:
        """Complete the claimed listing holding `code`.

        With requester_id set only that account's listings are searched, so a
        giver can never complete someone else's pickup by guessing codes.

        Raises:
            CodeNotFoundError: no claimed listing holds the code (wrong code,
                already completed or never claimed).
        """
        code = code.strip()
        if not is_well_formed(code):
            raise CodeNotFoundError()

        candidates = await self._repo.find_claimed_by_code(db, code, requester_id)
        for candidate in candidates:
            async with self._locks.hold(candidate.id):
                try:
                    listing = await self._repo.complete(db, candidate.id, code, utc_now())
                    if listing is None:
                        # Lost the race to another verifier; nothing written.
                        continue
                    split = await self._ledger.pay_completion(
                        db,
                        listing.id,
                        listing.title,
                        listing.carbon_saved,
                        listing.owner_id,
                        listing.claimant_id,  # type: ignore[arg-type]
                    )
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
            logger.info(
                "Listing %s completed by code: owner=%s claimant=%s credits_each=%d",
                listing.id, listing.owner_id, listing.claimant_id, split,
            )
            self._feed.notify("listings", listing.id, ChangeAction.UPDATED, listing.owner_id)
            self._feed.notify(
                "listings", listing.id, ChangeAction.UPDATED, listing.claimant_id  # type: ignore[arg-type]
            )
            self._feed.notify("accounts", listing.owner_id, ChangeAction.UPDATED, listing.owner_id)
            self._feed.notify(
                "accounts", listing.claimant_id, ChangeAction.UPDATED, listing.claimant_id  # type: ignore[arg-type]
            )
            return Completion(listing=listing, credits_each=split)

        logger.info("Claim code rejected (requester=%s)", requester_id)
        raise CodeNotFoundError()
