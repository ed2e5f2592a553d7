"""004: create chat_messages table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE chat_messages (
            id              VARCHAR(64)     PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id) ON DELETE CASCADE,
            sender_id       VARCHAR(128)    NOT NULL,
            text            VARCHAR(2000)   NOT NULL,
            is_system       BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_chat_text_not_blank CHECK (LENGTH(TRIM(text)) > 0)
        );
    """)
    op.execute("CREATE INDEX idx_chat_listing_time ON chat_messages (listing_id, created_at, id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS chat_messages CASCADE;")
