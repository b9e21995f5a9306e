"""PaymentRepository — concrete implementation of PaymentRepositoryProtocol.

mark_paid is the settlement compare-and-swap: the UPDATE only matches a
row that is still pending, so of two concurrent confirmations exactly one
gets a row back. The loser sees None and must not credit anything.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_common.errors import InternalError
from src.cr_payment.domain.models import PendingProvisioning, PixPayment
from src.cr_payment.infrastructure.db_models import PixPaymentORM

# ---------------------------------------------------------------------------
# SQL: pix_payments mutations
# ---------------------------------------------------------------------------

_INSERT_PAYMENT_SQL = text("""
    INSERT INTO pix_payments
        (admin_id, credits, amount_cents, unit_price_cents, transaction_id, status,
         pending_provisioning)
    VALUES
        (:admin_id, :credits, :amount_cents, :unit_price_cents, :transaction_id, :status,
         CAST(:pending_provisioning AS JSONB))
    RETURNING id, admin_id, credits, amount_cents, unit_price_cents, transaction_id,
              status, pending_provisioning, created_at, paid_at
""")

_MARK_PAID_SQL = text("""
    UPDATE pix_payments
    SET status = 'PAID',
        paid_at = NOW()
    WHERE transaction_id = :transaction_id
      AND status IN ('PENDING', 'PENDING_RESELLER')
    RETURNING id, admin_id, credits, amount_cents, unit_price_cents, transaction_id,
              status, pending_provisioning, created_at, paid_at
""")


def _row_to_payment(row: object) -> PixPayment:
    return PixPayment(
        id=row.id,  # type: ignore[attr-defined]
        admin_id=row.admin_id,  # type: ignore[attr-defined]
        credits=row.credits,  # type: ignore[attr-defined]
        amount_cents=row.amount_cents,  # type: ignore[attr-defined]
        unit_price_cents=row.unit_price_cents,  # type: ignore[attr-defined]
        transaction_id=row.transaction_id,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        pending_provisioning=PendingProvisioning.from_db(row.pending_provisioning),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        paid_at=row.paid_at,  # type: ignore[attr-defined]
    )


class PaymentRepository:
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
    ) -> PixPayment:
        result = await db.execute(
            _INSERT_PAYMENT_SQL,
            {
                "admin_id": admin_id,
                "credits": credits,
                "amount_cents": amount_cents,
                "unit_price_cents": unit_price_cents,
                "transaction_id": transaction_id,
                "status": status,
                "pending_provisioning": (
                    pending_provisioning.to_json() if pending_provisioning else None
                ),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Payment insert returned no rows")
        return _row_to_payment(row)

    async def get_by_transaction_id(
        self, db: AsyncSession, transaction_id: str
    ) -> PixPayment | None:
        result = await db.execute(
            select(PixPaymentORM)
            .where(PixPaymentORM.transaction_id == transaction_id)
            # Re-read after a concurrent settle instead of serving the identity map copy
            .execution_options(populate_existing=True)
        )
        obj = result.scalar_one_or_none()
        return _row_to_payment(obj) if obj is not None else None

    async def mark_paid(self, db: AsyncSession, transaction_id: str) -> PixPayment | None:
        result = await db.execute(_MARK_PAID_SQL, {"transaction_id": transaction_id})
        row = result.fetchone()
        return _row_to_payment(row) if row else None
