"""Repository and gateway Protocols — dependency inversion for testability.

Unit tests inject mocks conforming to these Protocols. Infrastructure
provides the PostgreSQL repository and the httpx gateway client.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_payment.domain.models import GatewayCharge, PayerInfo, PendingProvisioning, PixPayment


class PaymentRepositoryProtocol(Protocol):
    async def insert(
        self,
        db: AsyncSession,
        admin_id: int,
        credits: int,
        amount_cents: int,
        unit_price_cents: int | None,
        transaction_id: str,
        status: str,
        pending_provisioning: PendingProvisioning | None = None,
    ) -> PixPayment: ...

    async def get_by_transaction_id(
        self, db: AsyncSession, transaction_id: str
    ) -> PixPayment | None: ...

    async def mark_paid(self, db: AsyncSession, transaction_id: str) -> PixPayment | None:
        """Compare-and-swap PENDING* -> PAID. None if the row was not pending."""
        ...


class PaymentGatewayProtocol(Protocol):
    async def create_payment(
        self,
        identifier: str,
        amount_cents: int,
        payer: PayerInfo,
        callback_url: str,
    ) -> GatewayCharge: ...

    async def get_payment_status(self, transaction_id: str) -> str | None: ...
