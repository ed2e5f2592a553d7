"""B2BMarketRepository: concrete implementation of B2BMarketRepositoryProtocol.

Raw text() SQL. Fills use a guarded decrement
(WHERE remaining_amount >= :amount) so concurrent buyers can never drive a
listing below zero; the CHECK constraint on the table backs this up.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.errors import InternalError
from src.rp_market.domain.models import B2BListing, B2BPurchase

_LISTING_COLUMNS = """
    id, seller_id, original_amount, remaining_amount, price_per_unit,
    vintage, project, status, created_at, updated_at
"""

_PURCHASE_COLUMNS = """
    id, listing_id, buyer_id, seller_id, amount, price_per_unit, total_cost,
    vintage, project, retired, created_at
"""

_INSERT_LISTING_SQL = text(f"""
    INSERT INTO b2b_listings
        (id, seller_id, original_amount, remaining_amount, price_per_unit, vintage, project, status)
    VALUES
        (:id, :seller_id, :amount, :amount, :price_per_unit, :vintage, :project, 'ACTIVE')
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_SQL = text(f"SELECT {_LISTING_COLUMNS} FROM b2b_listings WHERE id = :listing_id")

_FILL_SQL = text(f"""
    UPDATE b2b_listings
    SET remaining_amount = remaining_amount - :amount,
        status = CASE WHEN remaining_amount - :amount = 0 THEN 'EXHAUSTED' ELSE status END,
        updated_at = NOW()
    WHERE id = :listing_id
      AND status = 'ACTIVE'
      AND remaining_amount >= :amount
    RETURNING {_LISTING_COLUMNS}
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM b2b_listings
    WHERE status = 'ACTIVE'
    ORDER BY price_per_unit ASC, created_at ASC
""")

_INSERT_PURCHASE_SQL = text(f"""
    INSERT INTO b2b_purchases
        (id, listing_id, buyer_id, seller_id, amount, price_per_unit, total_cost,
         vintage, project, retired)
    VALUES
        (:id, :listing_id, :buyer_id, :seller_id, :amount, :price_per_unit, :total_cost,
         :vintage, :project, :retired)
    RETURNING {_PURCHASE_COLUMNS}
""")

_LIST_PURCHASES_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM b2b_purchases
    WHERE buyer_id = :buyer_id
    ORDER BY created_at DESC, id DESC
""")


def _row_to_listing(row: object) -> B2BListing:
    return B2BListing(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        original_amount=row.original_amount,  # type: ignore[attr-defined]
        remaining_amount=row.remaining_amount,  # type: ignore[attr-defined]
        price_per_unit=row.price_per_unit,  # type: ignore[attr-defined]
        vintage=row.vintage,  # type: ignore[attr-defined]
        project=row.project,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_purchase(row: object) -> B2BPurchase:
    return B2BPurchase(
        id=row.id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        price_per_unit=row.price_per_unit,  # type: ignore[attr-defined]
        total_cost=row.total_cost,  # type: ignore[attr-defined]
        vintage=row.vintage,  # type: ignore[attr-defined]
        project=row.project,  # type: ignore[attr-defined]
        retired=row.retired,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class B2BMarketRepository:
    async def create_listing(self, db: AsyncSession, listing: B2BListing) -> B2BListing:
        result = await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "seller_id": listing.seller_id,
                "amount": listing.original_amount,
                "price_per_unit": listing.price_per_unit,
                "vintage": listing.vintage,
                "project": listing.project,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("B2B listing insert returned no rows")
        return _row_to_listing(row)

    async def get_listing(self, db: AsyncSession, listing_id: str) -> B2BListing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def fill(self, db: AsyncSession, listing_id: str, amount: int) -> B2BListing | None:
        result = await db.execute(_FILL_SQL, {"listing_id": listing_id, "amount": amount})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def list_active(self, db: AsyncSession) -> list[B2BListing]:
        result = await db.execute(_LIST_ACTIVE_SQL)
        return [_row_to_listing(row) for row in result.fetchall()]

    async def record_purchase(self, db: AsyncSession, purchase: B2BPurchase) -> B2BPurchase:
        result = await db.execute(
            _INSERT_PURCHASE_SQL,
            {
                "id": purchase.id,
                "listing_id": purchase.listing_id,
                "buyer_id": purchase.buyer_id,
                "seller_id": purchase.seller_id,
                "amount": purchase.amount,
                "price_per_unit": purchase.price_per_unit,
                "total_cost": purchase.total_cost,
                "vintage": purchase.vintage,
                "project": purchase.project,
                "retired": purchase.retired,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("B2B purchase insert returned no rows")
        return _row_to_purchase(row)

    async def list_purchases(self, db: AsyncSession, buyer_id: str) -> list[B2BPurchase]:
        result = await db.execute(_LIST_PURCHASES_SQL, {"buyer_id": buyer_id})
        return [_row_to_purchase(row) for row in result.fetchall()]
