"""005: create payments table

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
        CREATE TABLE payments (
            id              VARCHAR(64)     PRIMARY KEY,
            entry_id        VARCHAR(64)     NOT NULL REFERENCES ledger_entries (id) ON DELETE RESTRICT,
            payer_id        VARCHAR(64)     NOT NULL,
            amount          BIGINT          NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payments_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_payments_entry_time ON payments (entry_id, created_at);")
    op.execute("CREATE INDEX idx_payments_payer ON payments (payer_id, created_at DESC);")
    op.execute("COMMENT ON TABLE payments IS 'Payment audit trail — append-only, amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payments CASCADE;")
