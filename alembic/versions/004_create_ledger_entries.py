"""004: create ledger_entries table

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
        CREATE TABLE ledger_entries (
            id              VARCHAR(64)     PRIMARY KEY,
            event_id        VARCHAR(64)     NOT NULL REFERENCES events (id) ON DELETE CASCADE,
            participant_id  VARCHAR(64)     NOT NULL REFERENCES users (id),
            position        INTEGER         NOT NULL,
            obligation      BIGINT          NOT NULL,
            paid            BIGINT          NOT NULL DEFAULT 0,
            included        BOOLEAN         NOT NULL DEFAULT TRUE,
            settled         BOOLEAN         NOT NULL DEFAULT FALSE,
            settled_at      TIMESTAMPTZ,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_ledger_entries_participant UNIQUE (event_id, participant_id),
            CONSTRAINT ck_ledger_obligation_gte_0 CHECK (obligation >= 0),
            CONSTRAINT ck_ledger_paid_gte_0 CHECK (paid >= 0),
            CONSTRAINT ck_ledger_paid_lte_obligation CHECK (paid <= obligation),
            CONSTRAINT ck_ledger_settled_matches CHECK (settled = (paid = obligation)),
            CONSTRAINT ck_ledger_settled_at CHECK (NOT settled OR settled_at IS NOT NULL),
            CONSTRAINT ck_ledger_excluded_zero CHECK (included OR obligation = 0),
            CONSTRAINT ck_ledger_version_gte_0 CHECK (version >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_entries_event ON ledger_entries (event_id, position);")
    op.execute("CREATE INDEX idx_ledger_entries_participant ON ledger_entries (participant_id);")
    op.execute("""
        CREATE TRIGGER trg_ledger_entries_updated_at
            BEFORE UPDATE ON ledger_entries
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE ledger_entries IS 'One row per (event, participant); amounts in cents, version bumped on every update';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
