"""006: create b2b_listings table

Revision ID: 006
Revises: 005
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE b2b_listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            original_amount     BIGINT          NOT NULL,
            remaining_amount    BIGINT          NOT NULL,
            price_per_unit      BIGINT          NOT NULL,
            vintage             INTEGER         NOT NULL,
            project             VARCHAR(255)    NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_b2b_status CHECK (status IN ('ACTIVE', 'EXHAUSTED')),
            CONSTRAINT ck_b2b_original_gt_0 CHECK (original_amount > 0),
            CONSTRAINT ck_b2b_remaining_range CHECK (
                remaining_amount >= 0 AND remaining_amount <= original_amount
            ),
            CONSTRAINT ck_b2b_exhausted_iff_zero CHECK (
                (status = 'EXHAUSTED') = (remaining_amount = 0)
            ),
            CONSTRAINT ck_b2b_price_gt_0 CHECK (price_per_unit > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_b2b_listings_updated_at
            BEFORE UPDATE ON b2b_listings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_b2b_active ON b2b_listings (price_per_unit, created_at) WHERE status = 'ACTIVE';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS b2b_listings CASCADE;")
