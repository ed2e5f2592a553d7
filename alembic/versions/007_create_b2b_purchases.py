"""007: create b2b_purchases table

Revision ID: 007
Revises: 006
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE b2b_purchases (
            id              VARCHAR(64)     PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES b2b_listings (id),
            buyer_id        VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            seller_id       VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            amount          BIGINT          NOT NULL,
            price_per_unit  BIGINT          NOT NULL,
            total_cost      BIGINT          NOT NULL,
            vintage         INTEGER         NOT NULL,
            project         VARCHAR(255)    NOT NULL,
            retired         BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_purchase_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_purchase_total CHECK (total_cost = amount * price_per_unit),
            CONSTRAINT ck_purchase_not_self CHECK (buyer_id <> seller_id)
        );
    """)
    op.execute("CREATE INDEX idx_purchases_buyer ON b2b_purchases (buyer_id, created_at DESC);")
    op.execute("COMMENT ON TABLE b2b_purchases IS 'Buyer-side record of B2B fills; retirement is tracked here';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS b2b_purchases CASCADE;")
