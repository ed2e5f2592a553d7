"""002: create points_entries table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE points_entries (
            id              BIGSERIAL       PRIMARY KEY,
            account_id      VARCHAR(128)    NOT NULL REFERENCES accounts (id),
            kind            VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            description     VARCHAR(500)    NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_points_kind CHECK (kind IN ('EARNED', 'REDEEMED')),
            CONSTRAINT ck_points_sign CHECK (
                (kind = 'EARNED' AND amount > 0) OR (kind = 'REDEEMED' AND amount < 0)
            ),
            CONSTRAINT ck_points_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_points_account_id ON points_entries (account_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_points_reference
        ON points_entries (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("COMMENT ON TABLE points_entries IS 'Credit ledger. Append-only; amounts in credit units';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS points_entries CASCADE;")
