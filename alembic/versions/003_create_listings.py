"""003: create listings table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                      VARCHAR(64)     PRIMARY KEY,
            owner_id                VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            title                   VARCHAR(200)    NOT NULL,
            quantity                INTEGER         NOT NULL,
            location                VARCHAR(255)    NOT NULL,
            distance                VARCHAR(32)     NOT NULL DEFAULT '1km',
            carbon_saved            NUMERIC(10, 2)  NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'AVAILABLE',
            image_ref               VARCHAR(500),
            tags                    TEXT[]          NOT NULL DEFAULT '{}',
            ingredients             TEXT[]          NOT NULL DEFAULT '{}',
            calories_per_serving    INTEGER         NOT NULL DEFAULT 0,
            claimant_id             VARCHAR(128)    REFERENCES accounts (id),
            claim_code              VARCHAR(4),
            pickup_method           VARCHAR(20),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            claimed_at              TIMESTAMPTZ,
            completed_at            TIMESTAMPTZ,
            CONSTRAINT ck_listings_status CHECK (status IN ('AVAILABLE', 'CLAIMED', 'COMPLETED')),
            CONSTRAINT ck_listings_quantity_gt_0 CHECK (quantity > 0),
            CONSTRAINT ck_listings_carbon_gte_0 CHECK (carbon_saved >= 0),
            CONSTRAINT ck_listings_code_iff_claimed CHECK (
                (status = 'CLAIMED') = (claim_code IS NOT NULL)
            ),
            CONSTRAINT ck_listings_claimant_set CHECK (
                (status = 'AVAILABLE') = (claimant_id IS NULL)
            ),
            CONSTRAINT ck_listings_not_self_claimed CHECK (claimant_id IS NULL OR claimant_id <> owner_id)
        );
    """)
    op.execute("CREATE INDEX idx_listings_available ON listings (created_at DESC) WHERE status = 'AVAILABLE';")
    op.execute("CREATE INDEX idx_listings_owner ON listings (owner_id, status);")
    op.execute("CREATE INDEX idx_listings_claimant ON listings (claimant_id, status);")
    op.execute("CREATE INDEX idx_listings_claim_code ON listings (claim_code) WHERE status = 'CLAIMED';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
