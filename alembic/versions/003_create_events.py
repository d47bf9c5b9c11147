"""003: create events table

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
        CREATE TABLE events (
            id              VARCHAR(64)     PRIMARY KEY,
            title           VARCHAR(200)    NOT NULL,
            total           BIGINT          NOT NULL,
            creator_id      VARCHAR(64)     NOT NULL REFERENCES users (id),
            cancelled       BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_events_total_gt_0 CHECK (total > 0),
            CONSTRAINT ck_events_title_not_blank CHECK (LENGTH(TRIM(title)) > 0)
        );
    """)
    op.execute("CREATE INDEX idx_events_creator ON events (creator_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_events_updated_at
            BEFORE UPDATE ON events
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE events IS 'Shared-expense events; total in cents, immutable after creation';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS events CASCADE;")
