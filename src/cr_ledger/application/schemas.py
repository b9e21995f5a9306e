"""Pydantic schemas and cursor utilities for cr_ledger API."""

import base64
import json

from pydantic import BaseModel, Field

from src.cr_common.enums import TransactionType
from src.cr_ledger.domain.models import CreditTransaction

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TransferRequest(BaseModel):
    to_admin_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0, description="Credits to move")


class RechargeRequest(BaseModel):
    admin_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0, description="Credits to add")
    unit_price_cents: int | None = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    admin_id: int
    balance: int


class TransactionItem(BaseModel):
    id: int
    from_admin_id: int | None
    to_admin_id: int | None
    amount: int
    transaction_type: TransactionType
    direction: str                  # "in" or "out" relative to the viewer
    unit_price_cents: int | None
    total_price_cents: int | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: CreditTransaction, viewer_id: int) -> "TransactionItem":
        return cls(
            id=tx.id,
            from_admin_id=tx.from_admin_id,
            to_admin_id=tx.to_admin_id,
            amount=tx.amount,
            transaction_type=TransactionType(tx.transaction_type),
            direction="in" if tx.to_admin_id == viewer_id else "out",
            unit_price_cents=tx.unit_price_cents,
            total_price_cents=tx.total_price_cents,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class TransferResponse(BaseModel):
    transaction_id: int
    to_admin_id: int
    amount: int
    balance: int                    # payer's balance after the transfer


class RechargeResponse(BaseModel):
    transaction_id: int
    admin_id: int
    amount: int
    balance: int


class ReconcileResponse(BaseModel):
    admin_id: int
    balance: int
    ledger_net: int
    difference: int                 # balance - ledger_net; seeded balances show here
