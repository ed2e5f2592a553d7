"""005: create trade_offers table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trade_offers (
            id              VARCHAR(64)     PRIMARY KEY,
            enterprise_id   VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            region          VARCHAR(255)    NOT NULL,
            price           BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            accepted_by     VARCHAR(128)    REFERENCES accounts (id),
            rejected_by     VARCHAR(128)    REFERENCES accounts (id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at     TIMESTAMPTZ,
            CONSTRAINT ck_offers_status CHECK (status IN ('PENDING', 'ACCEPTED', 'REJECTED')),
            CONSTRAINT ck_offers_price_gt_0 CHECK (price > 0),
            CONSTRAINT ck_offers_accepted_by CHECK ((status = 'ACCEPTED') = (accepted_by IS NOT NULL))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_trade_offers_updated_at
            BEFORE UPDATE ON trade_offers
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_offers_enterprise ON trade_offers (enterprise_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_offers_pending_region
        ON trade_offers (LOWER(TRIM(region)))
        WHERE status = 'PENDING';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trade_offers CASCADE;")
