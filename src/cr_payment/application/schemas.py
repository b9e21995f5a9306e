"""Pydantic request/response schemas for cr_payment API."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.cr_common.money import cents_to_display
from src.cr_payment.domain.models import PriceTier

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreatePixRequest(BaseModel):
    credits: int = Field(..., gt=0, description="Package size, must be in the price table")
    # Optional echo of the price the client displayed; rejected if it disagrees
    expected_amount_cents: int | None = Field(None, ge=0)


class CreateResellerPixRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    secret: str = Field(..., min_length=6, max_length=72)


class WebhookPayload(BaseModel):
    """Gateway callback body. Extra fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transaction_id: str = Field(..., alias="transactionId", min_length=1)
    status: str = ""


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PackageItem(BaseModel):
    credits: int
    unit_price_cents: int
    unit_price_display: str
    total_cents: int
    total_display: str

    @classmethod
    def from_tier(cls, tier: PriceTier) -> "PackageItem":
        return cls(
            credits=tier.credits,
            unit_price_cents=tier.unit_price_cents,
            unit_price_display=cents_to_display(tier.unit_price_cents),
            total_cents=tier.total_cents,
            total_display=cents_to_display(tier.total_cents),
        )


class PackagesResponse(BaseModel):
    packages: list[PackageItem]
    reseller_creation_cents: int
    reseller_creation_display: str
    reseller_initial_credits: int


class PixIntentResponse(BaseModel):
    transaction_id: str
    status: str
    credits: int
    amount_cents: int
    amount_display: str
    qr_code: str | None
    qr_code_base64: str | None
    copy_paste: str | None
    expires_at: str  # ISO8601, display only


class PaymentStatusResponse(BaseModel):
    transaction_id: str
    status: str
    paid: bool
    expired: bool          # still pending past the client-visible TTL
    credits: int
    amount_cents: int
    amount_display: str
    created_at: str | None
    paid_at: str | None
    expires_at: str | None
