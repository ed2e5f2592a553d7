"""ListingRepository: concrete implementation of ListingRepositoryProtocol.

All queries use raw text() SQL (no ORM). Lifecycle transitions are single
UPDATE ... WHERE status = :expected RETURNING statements so two racing
claims on the same row cannot both succeed, even across processes.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.errors import InternalError
from src.rp_listing.domain.models import ChatMessage, Listing

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_LISTING_COLUMNS = """
    id, owner_id, title, quantity, location, distance, carbon_saved, status,
    image_ref, tags, ingredients, calories_per_serving,
    claimant_id, claim_code, pickup_method,
    created_at, claimed_at, completed_at
"""

_INSERT_LISTING_SQL = text(f"""
    INSERT INTO listings
        (id, owner_id, title, quantity, location, distance, carbon_saved, status,
         image_ref, tags, ingredients, calories_per_serving)
    VALUES
        (:id, :owner_id, :title, :quantity, :location, :distance, :carbon_saved, 'AVAILABLE',
         :image_ref, :tags, :ingredients, :calories_per_serving)
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE id = :listing_id
""")

_CLAIM_SQL = text(f"""
    UPDATE listings
    SET status = 'CLAIMED',
        claimant_id = :claimant_id,
        claim_code = :code,
        pickup_method = :pickup_method,
        claimed_at = :claimed_at
    WHERE id = :listing_id
      AND status = 'AVAILABLE'
      AND owner_id != :claimant_id
    RETURNING {_LISTING_COLUMNS}
""")

_COMPLETE_SQL = text(f"""
    UPDATE listings
    SET status = 'COMPLETED',
        claim_code = NULL,
        completed_at = :completed_at
    WHERE id = :listing_id
      AND status = 'CLAIMED'
      AND claim_code = :code
    RETURNING {_LISTING_COLUMNS}
""")

_DELETE_MESSAGES_SQL = text("DELETE FROM chat_messages WHERE listing_id = :listing_id")

_DELETE_LISTING_SQL = text("DELETE FROM listings WHERE id = :listing_id RETURNING id")

_FIND_BY_CODE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE status = 'CLAIMED'
      AND claim_code = :code
      AND (CAST(:owner_id AS TEXT) IS NULL OR owner_id = CAST(:owner_id AS TEXT))
    ORDER BY claimed_at ASC, id ASC
""")

_ACTIVE_CODES_SQL = text("""
    SELECT claim_code FROM listings WHERE status = 'CLAIMED' AND claim_code IS NOT NULL
""")

_LIST_AVAILABLE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE status = 'AVAILABLE'
      AND (CAST(:exclude_owner_id AS TEXT) IS NULL OR owner_id != CAST(:exclude_owner_id AS TEXT))
      AND (CAST(:location AS TEXT) IS NULL
           OR location ILIKE '%' || CAST(:location AS TEXT) || '%')
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_BY_OWNER_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE owner_id = :owner_id AND status = ANY(:statuses)
    ORDER BY created_at DESC, id DESC
""")

_LIST_BY_CLAIMANT_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE claimant_id = :claimant_id AND status = ANY(:statuses)
    ORDER BY claimed_at DESC, id DESC
""")

_INSERT_MESSAGE_SQL = text("""
    INSERT INTO chat_messages (id, listing_id, sender_id, text, is_system)
    VALUES (:id, :listing_id, :sender_id, :text, :is_system)
    RETURNING id, listing_id, sender_id, text, is_system, created_at
""")

_LIST_MESSAGES_SQL = text("""
    SELECT id, listing_id, sender_id, text, is_system, created_at
    FROM chat_messages
    WHERE listing_id = :listing_id
    ORDER BY created_at ASC, id ASC
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        owner_id=row.owner_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        location=row.location,  # type: ignore[attr-defined]
        distance=row.distance,  # type: ignore[attr-defined]
        carbon_saved=float(row.carbon_saved),  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        image_ref=row.image_ref,  # type: ignore[attr-defined]
        tags=list(row.tags or []),  # type: ignore[attr-defined]
        ingredients=list(row.ingredients or []),  # type: ignore[attr-defined]
        calories_per_serving=row.calories_per_serving,  # type: ignore[attr-defined]
        claimant_id=row.claimant_id,  # type: ignore[attr-defined]
        claim_code=row.claim_code,  # type: ignore[attr-defined]
        pickup_method=row.pickup_method,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        claimed_at=row.claimed_at,  # type: ignore[attr-defined]
        completed_at=row.completed_at,  # type: ignore[attr-defined]
    )


def _row_to_message(row: object) -> ChatMessage:
    return ChatMessage(
        id=row.id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        sender_id=row.sender_id,  # type: ignore[attr-defined]
        text=row.text,  # type: ignore[attr-defined]
        is_system=row.is_system,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    async def create(self, db: AsyncSession, listing: Listing) -> Listing:
        result = await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "owner_id": listing.owner_id,
                "title": listing.title,
                "quantity": listing.quantity,
                "location": listing.location,
                "distance": listing.distance,
                "carbon_saved": listing.carbon_saved,
                "image_ref": listing.image_ref,
                "tags": listing.tags,
                "ingredients": listing.ingredients,
                "calories_per_serving": listing.calories_per_serving,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Listing insert returned no rows")
        return _row_to_listing(row)

    async def get(self, db: AsyncSession, listing_id: str) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def claim(
        self,
        db: AsyncSession,
        listing_id: str,
        claimant_id: str,
        code: str,
        pickup_method: str,
        claimed_at: datetime,
    ) -> Listing | None:
        result = await db.execute(
            _CLAIM_SQL,
            {
                "listing_id": listing_id,
                "claimant_id": claimant_id,
                "code": code,
                "pickup_method": pickup_method,
                "claimed_at": claimed_at,
            },
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def complete(
        self,
        db: AsyncSession,
        listing_id: str,
        code: str,
        completed_at: datetime,
    ) -> Listing | None:
        result = await db.execute(
            _COMPLETE_SQL,
            {"listing_id": listing_id, "code": code, "completed_at": completed_at},
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def delete(self, db: AsyncSession, listing_id: str) -> bool:
        await db.execute(_DELETE_MESSAGES_SQL, {"listing_id": listing_id})
        result = await db.execute(_DELETE_LISTING_SQL, {"listing_id": listing_id})
        return result.fetchone() is not None

    async def find_claimed_by_code(
        self, db: AsyncSession, code: str, owner_id: str | None
    ) -> list[Listing]:
        result = await db.execute(_FIND_BY_CODE_SQL, {"code": code, "owner_id": owner_id})
        return [_row_to_listing(row) for row in result.fetchall()]

    async def active_claim_codes(self, db: AsyncSession) -> set[str]:
        result = await db.execute(_ACTIVE_CODES_SQL)
        return {row.claim_code for row in result.fetchall()}

    async def list_available(
        self,
        db: AsyncSession,
        exclude_owner_id: str | None,
        location_query: str | None,
        limit: int,
    ) -> list[Listing]:
        result = await db.execute(
            _LIST_AVAILABLE_SQL,
            {
                "exclude_owner_id": exclude_owner_id,
                "location": location_query or None,
                "limit": limit,
            },
        )
        return [_row_to_listing(row) for row in result.fetchall()]

    async def list_by_owner(
        self, db: AsyncSession, owner_id: str, statuses: list[str]
    ) -> list[Listing]:
        result = await db.execute(
            _LIST_BY_OWNER_SQL, {"owner_id": owner_id, "statuses": statuses}
        )
        return [_row_to_listing(row) for row in result.fetchall()]

    async def list_by_claimant(
        self, db: AsyncSession, claimant_id: str, statuses: list[str]
    ) -> list[Listing]:
        result = await db.execute(
            _LIST_BY_CLAIMANT_SQL, {"claimant_id": claimant_id, "statuses": statuses}
        )
        return [_row_to_listing(row) for row in result.fetchall()]

    async def append_message(self, db: AsyncSession, message: ChatMessage) -> ChatMessage:
        result = await db.execute(
            _INSERT_MESSAGE_SQL,
            {
                "id": message.id,
                "listing_id": message.listing_id,
                "sender_id": message.sender_id,
                "text": message.text,
                "is_system": message.is_system,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Chat message insert returned no rows")
        return _row_to_message(row)

    async def list_messages(self, db: AsyncSession, listing_id: str) -> list[ChatMessage]:
        result = await db.execute(_LIST_MESSAGES_SQL, {"listing_id": listing_id})
        return [_row_to_message(row) for row in result.fetchall()]
