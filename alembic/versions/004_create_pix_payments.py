"""004: create pix_payments table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pix_payments (
            id                    BIGSERIAL       PRIMARY KEY,
            admin_id              BIGINT          NOT NULL,
            credits               INTEGER         NOT NULL,
            amount_cents          BIGINT          NOT NULL,
            unit_price_cents      BIGINT,
            transaction_id        VARCHAR(128)    NOT NULL,
            status                VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            pending_provisioning  JSONB,
            created_at            TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            paid_at               TIMESTAMPTZ,
            CONSTRAINT uq_pix_payments_tx     UNIQUE (transaction_id),
            CONSTRAINT ck_pix_payments_status CHECK (
                status IN ('PENDING', 'PENDING_RESELLER', 'PAID')
            ),
            CONSTRAINT ck_pix_payments_paid_at CHECK (
                (status = 'PAID') = (paid_at IS NOT NULL)
            ),
            CONSTRAINT ck_pix_payments_provisioning CHECK (
                (status = 'PENDING_RESELLER' AND pending_provisioning IS NOT NULL)
                OR status <> 'PENDING_RESELLER'
            )
        );
    """)
    op.execute("CREATE INDEX idx_pix_payments_admin ON pix_payments (admin_id, created_at DESC);")
    op.execute("COMMENT ON TABLE pix_payments IS 'PIX charges: PENDING or PENDING_RESELLER until settled to PAID';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pix_payments CASCADE;")
