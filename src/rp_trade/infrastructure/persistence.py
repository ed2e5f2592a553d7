"""TradeOfferRepository: concrete implementation of TradeOfferRepositoryProtocol.

Raw text() SQL. Price changes and resolutions are guarded by
status = 'PENDING' in the WHERE clause; zero rows back means the offer had
already been settled.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.enums import TradeOfferStatus
from src.rp_common.errors import InternalError
from src.rp_trade.domain.models import TradeOffer

_COLUMNS = """
    id, enterprise_id, region, price, status, accepted_by, rejected_by,
    created_at, updated_at, resolved_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO trade_offers (id, enterprise_id, region, price, status)
    VALUES (:id, :enterprise_id, :region, :price, 'PENDING')
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM trade_offers WHERE id = :offer_id")

_UPDATE_PRICE_SQL = text(f"""
    UPDATE trade_offers
    SET price = :price, updated_at = NOW()
    WHERE id = :offer_id AND status = 'PENDING'
    RETURNING {_COLUMNS}
""")

_ACCEPT_SQL = text(f"""
    UPDATE trade_offers
    SET status = 'ACCEPTED', accepted_by = :account_id,
        resolved_at = :resolved_at, updated_at = NOW()
    WHERE id = :offer_id AND status = 'PENDING'
    RETURNING {_COLUMNS}
""")

_REJECT_SQL = text(f"""
    UPDATE trade_offers
    SET status = 'REJECTED', rejected_by = :account_id,
        resolved_at = :resolved_at, updated_at = NOW()
    WHERE id = :offer_id AND status = 'PENDING'
    RETURNING {_COLUMNS}
""")

_LIST_BY_ENTERPRISE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_offers
    WHERE enterprise_id = :enterprise_id
    ORDER BY created_at DESC, id DESC
""")

_LIST_PENDING_IN_REGION_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_offers
    WHERE status = 'PENDING' AND LOWER(TRIM(region)) = LOWER(TRIM(:region))
    ORDER BY price DESC, created_at ASC
""")


def _row_to_offer(row: object) -> TradeOffer:
    return TradeOffer(
        id=row.id,  # type: ignore[attr-defined]
        enterprise_id=row.enterprise_id,  # type: ignore[attr-defined]
        region=row.region,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        accepted_by=row.accepted_by,  # type: ignore[attr-defined]
        rejected_by=row.rejected_by,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


class TradeOfferRepository:
    async def create(self, db: AsyncSession, offer: TradeOffer) -> TradeOffer:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": offer.id,
                "enterprise_id": offer.enterprise_id,
                "region": offer.region,
                "price": offer.price,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Trade offer insert returned no rows")
        return _row_to_offer(row)

    async def get(self, db: AsyncSession, offer_id: str) -> TradeOffer | None:
        result = await db.execute(_GET_SQL, {"offer_id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def update_price(
        self, db: AsyncSession, offer_id: str, price: int
    ) -> TradeOffer | None:
        result = await db.execute(_UPDATE_PRICE_SQL, {"offer_id": offer_id, "price": price})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def resolve(
        self,
        db: AsyncSession,
        offer_id: str,
        status: str,
        account_id: str,
        resolved_at: datetime,
    ) -> TradeOffer | None:
        sql = _ACCEPT_SQL if status == TradeOfferStatus.ACCEPTED else _REJECT_SQL
        result = await db.execute(
            sql,
            {"offer_id": offer_id, "account_id": account_id, "resolved_at": resolved_at},
        )
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def list_by_enterprise(
        self, db: AsyncSession, enterprise_id: str
    ) -> list[TradeOffer]:
        result = await db.execute(_LIST_BY_ENTERPRISE_SQL, {"enterprise_id": enterprise_id})
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_pending_in_region(self, db: AsyncSession, region: str) -> list[TradeOffer]:
        result = await db.execute(_LIST_PENDING_IN_REGION_SQL, {"region": region})
        return [_row_to_offer(row) for row in result.fetchall()]
