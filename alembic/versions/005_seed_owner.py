"""005: seed owner account

Revision ID: 005
Revises: 004
Create Date: 2026-10-19

Reads OWNER_EMAIL / OWNER_SECRET (and optional OWNER_NAME) from the
environment at migration time. Skipped when they are not set.
"""

import os
from typing import Sequence, Union

import bcrypt
import sqlalchemy as sa
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    email = os.environ.get("OWNER_EMAIL", "").strip().lower()
    secret = os.environ.get("OWNER_SECRET", "")
    if not email or not secret:
        return

    credential_hash = bcrypt.hashpw(secret.encode(), bcrypt.gensalt()).decode()
    op.get_bind().execute(
        sa.text("""
            INSERT INTO admins (display_name, email, rank, credential_hash, balance)
            VALUES (:display_name, :email, 'owner', :credential_hash, 0)
            ON CONFLICT (email) DO NOTHING
        """),
        {
            "display_name": os.environ.get("OWNER_NAME", "Owner"),
            "email": email,
            "credential_hash": credential_hash,
        },
    )


def downgrade() -> None:
    op.execute("DELETE FROM admins WHERE rank = 'owner';")
