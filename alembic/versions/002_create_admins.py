"""002: create admins table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE admins (
            id               BIGSERIAL       PRIMARY KEY,
            display_name     VARCHAR(100)    NOT NULL,
            email            VARCHAR(255)    NOT NULL,
            rank             VARCHAR(20)     NOT NULL,
            created_by       BIGINT,
            balance          BIGINT          NOT NULL DEFAULT 0,
            credential_hash  VARCHAR(255)    NOT NULL,
            pin              VARCHAR(255),
            session_token    VARCHAR(64),
            last_active_at   TIMESTAMPTZ,
            last_ip          VARCHAR(64),
            created_at       TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_admins_email        UNIQUE (email),
            CONSTRAINT ck_admins_rank         CHECK (rank IN ('owner', 'master', 'reseller')),
            CONSTRAINT ck_admins_balance_gte0 CHECK (balance >= 0)
        );
    """)
    # created_by is a weak reference: no FK, deleting a master leaves its resellers
    op.execute("CREATE INDEX idx_admins_created_by ON admins (created_by);")
    op.execute("""
        CREATE TRIGGER trg_admins_updated_at
            BEFORE UPDATE ON admins
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE admins IS 'Owner, masters and resellers: identity, session, credit balance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admins CASCADE;")
