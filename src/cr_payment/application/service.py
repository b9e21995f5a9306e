"""PaymentSettlementService — PIX intents and their exactly-once settlement.

Intent creation calls the gateway BEFORE touching the database: if the
gateway fails nothing is persisted.

settle() is driven by the webhook and by client polling, possibly both at
once. The PENDING* -> PAID UPDATE is the serialisation point: whoever gets
the row back credits the ledger, everyone else sees ALREADY_PAID. The
status flip and the ledger credit share one transaction, so a crash
between them rolls both back and the next notification retries cleanly.
"""

import logging
import re
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cr_account.domain.models import Admin
from src.cr_account.domain.repository import AdminRepositoryProtocol
from src.cr_account.infrastructure.persistence import AdminRepository
from src.cr_auth.auth.credentials import hash_secret
from src.cr_common.datetime_utils import is_past, utc_now
from src.cr_common.enums import (
    GATEWAY_SUCCESS_STATUSES,
    AdminRank,
    PixPaymentStatus,
    SettlementResult,
    TransactionType,
)
from src.cr_common.errors import (
    EmailExistsError,
    GatewayError,
    PaymentNotFoundError,
    PermissionDeniedError,
    PriceMismatchError,
)
from src.cr_common.id_generator import payment_identifier
from src.cr_common.money import cents_to_display
from src.cr_ledger.application.service import LedgerService
from src.cr_payment.application.schemas import (
    PackageItem,
    PackagesResponse,
    PaymentStatusResponse,
    PixIntentResponse,
)
from src.cr_payment.domain.models import (
    GatewayCharge,
    PayerInfo,
    PendingProvisioning,
    PixPayment,
    SettlementOutcome,
)
from src.cr_payment.domain.pricing import (
    PRICE_TIERS,
    RESELLER_CREATION_PRICE_CENTS,
    RESELLER_INITIAL_CREDITS,
    price_for,
)
from src.cr_payment.domain.repository import PaymentGatewayProtocol, PaymentRepositoryProtocol
from src.cr_payment.infrastructure.gateway import VizzionPayGateway
from src.cr_payment.infrastructure.persistence import PaymentRepository

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[<>\"'&]")


def _payment_ttl() -> timedelta:
    return timedelta(minutes=settings.PIX_PAYMENT_TTL_MINUTES)


def _payer_for(admin: Admin) -> PayerInfo:
    name = _UNSAFE_NAME_CHARS.sub("", admin.display_name).strip()[:50]
    return PayerInfo(
        name=name or f"Admin {admin.id}",
        email=f"admin{admin.id}@{settings.PIX_PAYER_EMAIL_DOMAIN}",
        phone=settings.PIX_PAYER_PHONE,
        document=settings.PIX_PAYER_DOCUMENT,
    )


def _require_master(admin: Admin) -> None:
    if admin.rank != AdminRank.MASTER:
        raise PermissionDeniedError("only masters can pay for credits")


class PaymentSettlementService:
    def __init__(
        self,
        repo: PaymentRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
        ledger: LedgerService | None = None,
        admins: AdminRepositoryProtocol | None = None,
    ) -> None:
        self._repo: PaymentRepositoryProtocol = repo or PaymentRepository()
        self._gateway: PaymentGatewayProtocol = gateway or VizzionPayGateway()
        self._ledger = ledger or LedgerService()
        self._admins: AdminRepositoryProtocol = admins or AdminRepository()

    # ------------------------------------------------------------------
    # Price table
    # ------------------------------------------------------------------

    def list_packages(self) -> PackagesResponse:
        return PackagesResponse(
            packages=[PackageItem.from_tier(t) for t in PRICE_TIERS],
            reseller_creation_cents=RESELLER_CREATION_PRICE_CENTS,
            reseller_creation_display=cents_to_display(RESELLER_CREATION_PRICE_CENTS),
            reseller_initial_credits=RESELLER_INITIAL_CREDITS,
        )

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def create_pix_intent(
        self,
        db: AsyncSession,
        admin: Admin,
        credits: int,
        expected_amount_cents: int | None = None,
    ) -> PixIntentResponse:
        """Open a PIX charge for a credit package. Price always comes from the table."""
        _require_master(admin)
        tier = price_for(credits)
        if expected_amount_cents is not None and expected_amount_cents != tier.total_cents:
            raise PriceMismatchError(expected_amount_cents, tier.total_cents)

        charge = await self._gateway.create_payment(
            identifier=payment_identifier(admin.id),
            amount_cents=tier.total_cents,
            payer=_payer_for(admin),
            callback_url=settings.PIX_CALLBACK_URL,
        )
        payment = await self._persist(
            db,
            admin_id=admin.id,
            credits=tier.credits,
            amount_cents=tier.total_cents,
            unit_price_cents=tier.unit_price_cents,
            charge=charge,
            status=PixPaymentStatus.PENDING,
        )
        logger.info(
            "PIX intent created: tx=%s admin=%s credits=%s amount=%s",
            payment.transaction_id, admin.id, credits, tier.total_cents,
        )
        return self._intent_view(payment, charge)

    async def create_reseller_intent(
        self,
        db: AsyncSession,
        master: Admin,
        display_name: str,
        email: str,
        secret: str,
    ) -> PixIntentResponse:
        """Open the fixed-price charge that provisions a reseller once paid.

        The reseller does not exist until settlement; its data travels on the
        payment row, with the secret already bcrypt-hashed.
        """
        _require_master(master)
        if await self._admins.get_by_email(db, email) is not None:
            raise EmailExistsError()

        provisioning = PendingProvisioning(
            display_name=display_name.strip(),
            email=email.strip().lower(),
            credential_hash=hash_secret(secret),
        )
        charge = await self._gateway.create_payment(
            identifier=payment_identifier(master.id),
            amount_cents=RESELLER_CREATION_PRICE_CENTS,
            payer=_payer_for(master),
            callback_url=settings.PIX_CALLBACK_URL,
        )
        payment = await self._persist(
            db,
            admin_id=master.id,
            credits=RESELLER_INITIAL_CREDITS,
            amount_cents=RESELLER_CREATION_PRICE_CENTS,
            unit_price_cents=None,
            charge=charge,
            status=PixPaymentStatus.PENDING_RESELLER,
            pending_provisioning=provisioning,
        )
        logger.info(
            "Reseller PIX intent created: tx=%s master=%s",
            payment.transaction_id, master.id,
        )
        return self._intent_view(payment, charge)

    async def _persist(
        self,
        db: AsyncSession,
        admin_id: int,
        credits: int,
        amount_cents: int,
        unit_price_cents: int | None,
        charge: GatewayCharge,
        status: PixPaymentStatus,
        pending_provisioning: PendingProvisioning | None = None,
    ) -> PixPayment:
        try:
            payment = await self._repo.insert(
                db,
                admin_id=admin_id,
                credits=credits,
                amount_cents=amount_cents,
                unit_price_cents=unit_price_cents,
                transaction_id=charge.transaction_id,
                status=status.value,
                pending_provisioning=pending_provisioning,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return payment

    def _intent_view(self, payment: PixPayment, charge: GatewayCharge) -> PixIntentResponse:
        created = payment.created_at or utc_now()
        return PixIntentResponse(
            transaction_id=payment.transaction_id,
            status=payment.status,
            credits=payment.credits,
            amount_cents=payment.amount_cents,
            amount_display=cents_to_display(payment.amount_cents),
            qr_code=charge.qr_code,
            qr_code_base64=charge.qr_code_base64,
            copy_paste=charge.qr_code,
            expires_at=(created + _payment_ttl()).isoformat(),
        )

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def settle(
        self, db: AsyncSession, transaction_id: str, reported_status: str | None
    ) -> SettlementOutcome:
        """Flip a pending payment to PAID and apply its effect, at most once.

        The credited amount always comes from the stored row; the reported
        status only triggers the transition.
        """
        status = (reported_status or "").strip().upper()
        try:
            existing = await self._repo.get_by_transaction_id(db, transaction_id)
            if existing is None:
                logger.info("Settlement for unknown transaction ignored: tx=%s", transaction_id)
                return SettlementOutcome(SettlementResult.NOT_FOUND)
            if not existing.is_pending:
                logger.info("Settlement replay ignored: tx=%s already PAID", transaction_id)
                return SettlementOutcome(SettlementResult.ALREADY_PAID, payment=existing)
            if status not in GATEWAY_SUCCESS_STATUSES:
                logger.info("Non-final status %r for tx=%s", status, transaction_id)
                return SettlementOutcome(SettlementResult.IGNORED, payment=existing)

            payment = await self._repo.mark_paid(db, transaction_id)
            if payment is None:
                # Lost the race to a concurrent settle
                logger.info("Settlement race lost: tx=%s already PAID", transaction_id)
                return SettlementOutcome(SettlementResult.ALREADY_PAID, payment=existing)

            if payment.pending_provisioning is None:
                await self._ledger.recharge(
                    db,
                    payment.admin_id,
                    payment.credits,
                    unit_price_cents=payment.unit_price_cents,
                    total_price_cents=payment.amount_cents,
                )
                outcome = SettlementOutcome(
                    SettlementResult.SETTLED,
                    payment=payment,
                    credited_admin_id=payment.admin_id,
                )
            else:
                outcome = await self._provision_reseller(db, payment, payment.pending_provisioning)

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payment settled: tx=%s admin=%s credits=%s credited=%s created=%s",
            transaction_id, payment.admin_id, payment.credits,
            outcome.credited_admin_id, outcome.created_admin_id,
        )
        return outcome

    async def _provision_reseller(
        self, db: AsyncSession, payment: PixPayment, data: PendingProvisioning
    ) -> SettlementOutcome:
        created = await self._admins.create(
            db,
            display_name=data.display_name,
            email=data.email,
            credential_hash=data.credential_hash,
            rank=AdminRank.RESELLER.value,
            created_by=payment.admin_id,
        )
        if created is not None:
            reseller_id = created.id
            created_id: int | None = created.id
        else:
            existing = await self._admins.get_by_email(db, data.email)
            if existing is None:
                # ON CONFLICT hit but the row vanished; nothing to credit
                logger.error(
                    "Reseller provisioning found no account: tx=%s", payment.transaction_id
                )
                return SettlementOutcome(SettlementResult.SETTLED, payment=payment)
            logger.warning(
                "Reseller email already registered, reusing account: tx=%s admin=%s",
                payment.transaction_id, existing.id,
            )
            reseller_id = existing.id
            created_id = None

        credited_id: int | None = reseller_id
        try:
            async with db.begin_nested():
                await self._ledger.recharge(
                    db,
                    reseller_id,
                    payment.credits,
                    unit_price_cents=None,
                    total_price_cents=payment.amount_cents,
                    transaction_type=TransactionType.RESELLER_CREATION,
                )
        except Exception:
            # The savepoint is gone; the payment and the account still commit
            logger.exception(
                "Reseller initial credit failed: tx=%s reseller=%s",
                payment.transaction_id, reseller_id,
            )
            credited_id = None

        return SettlementOutcome(
            SettlementResult.SETTLED,
            payment=payment,
            credited_admin_id=credited_id,
            created_admin_id=created_id,
        )

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def poll(
        self, db: AsyncSession, admin: Admin, transaction_id: str
    ) -> PaymentStatusResponse:
        """Status check for the payer. Asks the gateway while still pending.

        A confirmation that arrives after the client-side expiry is still
        honoured.
        """
        payment = await self._repo.get_by_transaction_id(db, transaction_id)
        if payment is None or payment.admin_id != admin.id:
            raise PaymentNotFoundError(transaction_id)

        if payment.is_pending:
            try:
                gateway_status = await self._gateway.get_payment_status(transaction_id)
            except GatewayError:
                # Report the stored state; the client polls again
                logger.warning("Gateway status check failed: tx=%s", transaction_id)
                gateway_status = None
            if gateway_status in GATEWAY_SUCCESS_STATUSES:
                outcome = await self.settle(db, transaction_id, gateway_status)
                if outcome.payment is not None:
                    payment = outcome.payment
                if outcome.result == SettlementResult.ALREADY_PAID:
                    payment = await self._repo.get_by_transaction_id(db, transaction_id) or payment

        return self._status_view(payment)

    def _status_view(self, payment: PixPayment) -> PaymentStatusResponse:
        ttl = _payment_ttl()
        created = payment.created_at
        return PaymentStatusResponse(
            transaction_id=payment.transaction_id,
            status=payment.status,
            paid=payment.status == PixPaymentStatus.PAID,
            expired=bool(payment.is_pending and created and is_past(created, ttl)),
            credits=payment.credits,
            amount_cents=payment.amount_cents,
            amount_display=cents_to_display(payment.amount_cents),
            created_at=created.isoformat() if created else None,
            paid_at=payment.paid_at.isoformat() if payment.paid_at else None,
            expires_at=(created + ttl).isoformat() if created else None,
        )
