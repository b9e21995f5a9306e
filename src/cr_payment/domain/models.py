"""Domain models for cr_payment — pure dataclasses, no SQLAlchemy dependency."""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from src.cr_common.enums import PixPaymentStatus, SettlementResult


@dataclass(frozen=True)
class PriceTier:
    credits: int
    unit_price_cents: int

    @property
    def total_cents(self) -> int:
        return self.credits * self.unit_price_cents


@dataclass(frozen=True)
class PendingProvisioning:
    """Reseller data parked on a PENDING_RESELLER payment until it is paid.

    credential_hash is already bcrypt; the plain secret is never stored.
    """
    display_name: str
    email: str
    credential_hash: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_db(cls, value: Any) -> "PendingProvisioning | None":
        """JSONB arrives as dict from asyncpg, as str from raw text queries."""
        if value is None:
            return None
        if isinstance(value, str):
            value = json.loads(value)
        return cls(
            display_name=value["display_name"],
            email=value["email"],
            credential_hash=value["credential_hash"],
        )


@dataclass
class PixPayment:
    id: int
    admin_id: int                      # payer; the master who opened the intent
    credits: int
    amount_cents: int
    unit_price_cents: int | None
    transaction_id: str                # gateway-assigned, unique
    status: str                        # PixPaymentStatus value
    pending_provisioning: PendingProvisioning | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status in (PixPaymentStatus.PENDING, PixPaymentStatus.PENDING_RESELLER)

    @property
    def is_reseller_intent(self) -> bool:
        return self.pending_provisioning is not None


@dataclass(frozen=True)
class PayerInfo:
    name: str
    email: str
    phone: str = ""
    document: str = ""


@dataclass(frozen=True)
class GatewayCharge:
    """What the gateway hands back for a newly created charge."""
    transaction_id: str
    qr_code: str | None
    qr_code_base64: str | None
    due_date: str | None = None


@dataclass
class SettlementOutcome:
    result: SettlementResult
    payment: PixPayment | None = None
    credited_admin_id: int | None = None
    created_admin_id: int | None = None
