"""Domain models for cr_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class CreditTransaction:
    """One immutable ledger row. Never updated or deleted once written."""
    id: int
    from_admin_id: int | None         # None for recharge / external funding
    to_admin_id: int | None
    amount: int                       # credits, always positive
    transaction_type: str             # TransactionType value
    unit_price_cents: int | None = None
    total_price_cents: int | None = None
    created_at: datetime | None = None


@dataclass
class LockedAccount:
    """Balance snapshot read under SELECT ... FOR UPDATE."""
    id: int
    rank: str
    created_by: int | None
    balance: int


@dataclass
class TransferResult:
    transaction: CreditTransaction
    payer_balance: int
    payee_balance: int


@dataclass
class RechargeResult:
    transaction: CreditTransaction
    balance: int
