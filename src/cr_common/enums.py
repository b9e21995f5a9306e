"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class AdminRank(str, Enum):
    OWNER = "owner"
    MASTER = "master"
    RESELLER = "reseller"


class TransactionType(str, Enum):
    TRANSFER = "transfer"
    RECHARGE = "recharge"
    RESELLER_CREATION = "reseller_creation"


class PixPaymentStatus(str, Enum):
    PENDING = "PENDING"
    PENDING_RESELLER = "PENDING_RESELLER"
    PAID = "PAID"


class SettlementResult(str, Enum):
    """Outcome of one settle() call. Only SETTLED mutated anything."""
    SETTLED = "SETTLED"
    ALREADY_PAID = "ALREADY_PAID"
    NOT_FOUND = "NOT_FOUND"
    IGNORED = "IGNORED"


# Gateway status strings that mean the payer's money arrived
GATEWAY_SUCCESS_STATUSES = frozenset({"PAID", "COMPLETED", "APPROVED"})
