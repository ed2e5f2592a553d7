"""001: create accounts table

Revision ID: 001
Revises: 
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE accounts (
            id              VARCHAR(128)    PRIMARY KEY,
            role            VARCHAR(20)     NOT NULL,
            display_name    VARCHAR(120)    NOT NULL,
            region          VARCHAR(255)    NOT NULL,
            balance         BIGINT          NOT NULL DEFAULT 0,
            rating          DOUBLE PRECISION NOT NULL DEFAULT 5.0,
            rating_count    INTEGER         NOT NULL DEFAULT 0,
            verified        BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_accounts_role          CHECK (role IN ('INDIVIDUAL', 'ENTERPRISE')),
            CONSTRAINT ck_accounts_balance_gte_0 CHECK (balance >= 0),
            CONSTRAINT ck_accounts_rating_range  CHECK (rating >= 0 AND rating <= 5)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_accounts_updated_at
            BEFORE UPDATE ON accounts
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_accounts_region ON accounts (LOWER(TRIM(region)));")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
