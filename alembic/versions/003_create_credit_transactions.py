"""003: create credit_transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_transactions (
            id                 BIGSERIAL       PRIMARY KEY,
            from_admin_id      BIGINT,
            to_admin_id        BIGINT,
            amount             INTEGER         NOT NULL,
            unit_price_cents   BIGINT,
            total_price_cents  BIGINT,
            transaction_type   VARCHAR(30)     NOT NULL,
            created_at         TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_tx_amount_pos CHECK (amount > 0),
            CONSTRAINT ck_credit_tx_type CHECK (
                transaction_type IN ('transfer', 'recharge', 'reseller_creation')
            )
        );
    """)
    op.execute("CREATE INDEX idx_credit_tx_from ON credit_transactions (from_admin_id, id DESC);")
    op.execute("CREATE INDEX idx_credit_tx_to ON credit_transactions (to_admin_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_credit_tx_append_only
            BEFORE UPDATE OR DELETE ON credit_transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE credit_transactions IS 'Append-only credit ledger';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE;")
