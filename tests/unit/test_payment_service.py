"""Unit tests for PaymentSettlementService with mocked collaborators."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import bcrypt
import pytest

from src.cr_account.domain.models import Admin
from src.cr_common.enums import SettlementResult, TransactionType
from src.cr_common.errors import (
    EmailExistsError,
    GatewayError,
    InvalidPackageError,
    PaymentNotFoundError,
    PermissionDeniedError,
    PriceMismatchError,
)
from src.cr_payment.application.service import PaymentSettlementService
from src.cr_payment.domain.models import GatewayCharge, PendingProvisioning, PixPayment


def _make_admin(admin_id: int = 5, rank: str = "master") -> Admin:
    return Admin(
        id=admin_id,
        display_name="Maria <Revendas>",
        email="maria@example.com",
        rank=rank,
        balance=0,
        credential_hash="x",
    )


def _make_payment(
    status: str = "PENDING",
    credits: int = 50,
    amount_cents: int = 65000,
    provisioning: PendingProvisioning | None = None,
    created_at: datetime | None = None,
) -> PixPayment:
    return PixPayment(
        id=1,
        admin_id=5,
        credits=credits,
        amount_cents=amount_cents,
        unit_price_cents=1300 if provisioning is None else None,
        transaction_id="T123",
        status=status,
        pending_provisioning=provisioning,
        created_at=created_at or datetime.now(UTC),
    )


def _make_db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=None)
    nested.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=nested)
    return db


def _make_service(
    payment: PixPayment | None = None,
) -> tuple[PaymentSettlementService, AsyncMock, AsyncMock, AsyncMock, AsyncMock]:
    repo = AsyncMock()
    repo.get_by_transaction_id.return_value = payment
    repo.insert.side_effect = lambda db, **kw: PixPayment(
        id=1,
        admin_id=kw["admin_id"],
        credits=kw["credits"],
        amount_cents=kw["amount_cents"],
        unit_price_cents=kw["unit_price_cents"],
        transaction_id=kw["transaction_id"],
        status=kw["status"],
        pending_provisioning=kw.get("pending_provisioning"),
        created_at=datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
    )
    gateway = AsyncMock()
    gateway.create_payment.return_value = GatewayCharge(
        transaction_id="T123", qr_code="000201pix", qr_code_base64="iVBORw0"
    )
    ledger = AsyncMock()
    admins = AsyncMock()
    admins.get_by_email.return_value = None
    svc = PaymentSettlementService(repo=repo, gateway=gateway, ledger=ledger, admins=admins)
    return svc, repo, gateway, ledger, admins


class TestPackages:
    def test_lists_full_table(self) -> None:
        svc, *_ = _make_service()
        data = svc.list_packages()
        assert len(data.packages) == 17
        assert data.packages[0].credits == 10
        assert data.packages[0].total_display == "R$ 140,00"
        assert data.reseller_creation_cents == 9000
        assert data.reseller_initial_credits == 5


class TestCreatePixIntent:
    async def test_happy_path_persists_pending(self) -> None:
        svc, repo, gateway, _, _ = _make_service()
        db = _make_db()

        result = await svc.create_pix_intent(db, _make_admin(), 50)

        assert result.transaction_id == "T123"
        assert result.status == "PENDING"
        assert result.amount_cents == 65000
        assert result.amount_display == "R$ 650,00"
        assert result.qr_code == "000201pix"
        assert result.copy_paste == "000201pix"
        assert result.expires_at == "2026-01-01T12:10:00+00:00"

        call = gateway.create_payment.await_args.kwargs
        assert call["amount_cents"] == 65000
        assert call["identifier"].startswith("ADMIN_5_")
        assert call["payer"].name == "Maria Revendas"
        assert call["payer"].email.startswith("admin5@")
        kw = repo.insert.await_args.kwargs
        assert (kw["credits"], kw["unit_price_cents"], kw["status"]) == (50, 1300, "PENDING")
        db.commit.assert_awaited_once()

    async def test_invalid_package(self) -> None:
        svc, repo, gateway, _, _ = _make_service()
        with pytest.raises(InvalidPackageError):
            await svc.create_pix_intent(_make_db(), _make_admin(), 42)
        gateway.create_payment.assert_not_awaited()
        repo.insert.assert_not_awaited()

    async def test_client_price_must_match_table(self) -> None:
        svc, _, gateway, _, _ = _make_service()
        with pytest.raises(PriceMismatchError):
            await svc.create_pix_intent(_make_db(), _make_admin(), 50, expected_amount_cents=100)
        gateway.create_payment.assert_not_awaited()

    async def test_matching_client_price_accepted(self) -> None:
        svc, *_ = _make_service()
        result = await svc.create_pix_intent(
            _make_db(), _make_admin(), 50, expected_amount_cents=65000
        )
        assert result.amount_cents == 65000

    @pytest.mark.parametrize("rank", ["owner", "reseller"])
    async def test_only_masters(self, rank: str) -> None:
        svc, _, gateway, _, _ = _make_service()
        with pytest.raises(PermissionDeniedError):
            await svc.create_pix_intent(_make_db(), _make_admin(rank=rank), 50)
        gateway.create_payment.assert_not_awaited()

    async def test_gateway_failure_persists_nothing(self) -> None:
        svc, repo, gateway, _, _ = _make_service()
        gateway.create_payment.side_effect = GatewayError()
        db = _make_db()

        with pytest.raises(GatewayError):
            await svc.create_pix_intent(db, _make_admin(), 50)
        repo.insert.assert_not_awaited()
        db.commit.assert_not_awaited()


class TestCreateResellerIntent:
    async def test_stores_hashed_provisioning(self) -> None:
        svc, repo, gateway, _, _ = _make_service()

        result = await svc.create_reseller_intent(
            _make_db(), _make_admin(), " Joao ", "Joao@Example.com", "s3cret!"
        )

        assert result.status == "PENDING_RESELLER"
        assert result.amount_cents == 9000
        assert gateway.create_payment.await_args.kwargs["amount_cents"] == 9000
        kw = repo.insert.await_args.kwargs
        assert kw["credits"] == 5
        prov = kw["pending_provisioning"]
        assert prov.display_name == "Joao"
        assert prov.email == "joao@example.com"
        assert prov.credential_hash != "s3cret!"
        assert bcrypt.checkpw(b"s3cret!", prov.credential_hash.encode())

    async def test_existing_email_rejected(self) -> None:
        svc, _, gateway, _, admins = _make_service()
        admins.get_by_email.return_value = _make_admin(admin_id=9, rank="reseller")

        with pytest.raises(EmailExistsError):
            await svc.create_reseller_intent(
                _make_db(), _make_admin(), "Joao", "joao@example.com", "s3cret!"
            )
        gateway.create_payment.assert_not_awaited()

    async def test_only_masters(self) -> None:
        svc, *_ = _make_service()
        with pytest.raises(PermissionDeniedError):
            await svc.create_reseller_intent(
                _make_db(), _make_admin(rank="reseller"), "Joao", "j@example.com", "s3cret!"
            )


class TestSettle:
    async def test_unknown_transaction_is_noop(self) -> None:
        svc, repo, _, ledger, _ = _make_service(payment=None)

        outcome = await svc.settle(_make_db(), "NOPE", "PAID")

        assert outcome.result == SettlementResult.NOT_FOUND
        repo.mark_paid.assert_not_awaited()
        ledger.recharge.assert_not_awaited()

    async def test_already_paid_is_noop(self) -> None:
        svc, repo, _, ledger, _ = _make_service(payment=_make_payment(status="PAID"))

        outcome = await svc.settle(_make_db(), "T123", "PAID")

        assert outcome.result == SettlementResult.ALREADY_PAID
        repo.mark_paid.assert_not_awaited()
        ledger.recharge.assert_not_awaited()

    @pytest.mark.parametrize("status", ["PENDING", "FAILED", "", None])
    async def test_non_success_status_ignored(self, status: str | None) -> None:
        svc, repo, _, ledger, _ = _make_service(payment=_make_payment())

        outcome = await svc.settle(_make_db(), "T123", status)

        assert outcome.result == SettlementResult.IGNORED
        repo.mark_paid.assert_not_awaited()
        ledger.recharge.assert_not_awaited()

    @pytest.mark.parametrize("status", ["PAID", "COMPLETED", "APPROVED", "paid"])
    async def test_success_credits_stored_amount(self, status: str) -> None:
        payment = _make_payment()
        svc, repo, _, ledger, _ = _make_service(payment=payment)
        repo.mark_paid.return_value = _make_payment(status="PAID")
        db = _make_db()

        outcome = await svc.settle(db, "T123", status)

        assert outcome.result == SettlementResult.SETTLED
        assert outcome.credited_admin_id == 5
        ledger.recharge.assert_awaited_once_with(
            db, 5, 50, unit_price_cents=1300, total_price_cents=65000
        )
        db.commit.assert_awaited_once()

    async def test_lost_race_does_not_credit(self) -> None:
        svc, repo, _, ledger, _ = _make_service(payment=_make_payment())
        repo.mark_paid.return_value = None

        outcome = await svc.settle(_make_db(), "T123", "PAID")

        assert outcome.result == SettlementResult.ALREADY_PAID
        ledger.recharge.assert_not_awaited()

    async def test_ledger_failure_rolls_back_status_flip(self) -> None:
        svc, repo, _, ledger, _ = _make_service(payment=_make_payment())
        repo.mark_paid.return_value = _make_payment(status="PAID")
        ledger.recharge.side_effect = RuntimeError("db down")
        db = _make_db()

        with pytest.raises(RuntimeError):
            await svc.settle(db, "T123", "PAID")
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_concurrent_settles_credit_exactly_once(self) -> None:
        # The repo's mark_paid behaves like the SQL compare-and-swap
        state = {"status": "PENDING"}

        async def get_by_tx(db, tx):  # type: ignore[no-untyped-def]
            await asyncio.sleep(0)
            return _make_payment(status=state["status"])

        async def mark_paid(db, tx):  # type: ignore[no-untyped-def]
            await asyncio.sleep(0)
            if state["status"] == "PAID":
                return None
            state["status"] = "PAID"
            return _make_payment(status="PAID")

        svc, repo, _, ledger, _ = _make_service()
        repo.get_by_transaction_id.side_effect = get_by_tx
        repo.mark_paid.side_effect = mark_paid

        outcomes = await asyncio.gather(
            svc.settle(_make_db(), "T123", "PAID"),
            svc.settle(_make_db(), "T123", "PAID"),
        )

        results = sorted(o.result.value for o in outcomes)
        assert results == ["ALREADY_PAID", "SETTLED"]
        ledger.recharge.assert_awaited_once()
        assert state["status"] == "PAID"


class TestSettleResellerProvisioning:
    def _provisioning(self) -> PendingProvisioning:
        return PendingProvisioning(
            display_name="Joao", email="joao@example.com", credential_hash="$2b$04$hash"
        )

    async def test_creates_reseller_and_credits_initial_package(self) -> None:
        prov = self._provisioning()
        payment = _make_payment(status="PENDING_RESELLER", credits=5, amount_cents=9000,
                                provisioning=prov)
        svc, repo, _, ledger, admins = _make_service(payment=payment)
        repo.mark_paid.return_value = _make_payment(
            status="PAID", credits=5, amount_cents=9000, provisioning=prov
        )
        admins.create.return_value = _make_admin(admin_id=42, rank="reseller")
        db = _make_db()

        outcome = await svc.settle(db, "T123", "PAID")

        assert outcome.result == SettlementResult.SETTLED
        assert outcome.created_admin_id == 42
        assert outcome.credited_admin_id == 42
        create_kw = admins.create.await_args.kwargs
        assert create_kw["rank"] == "reseller"
        assert create_kw["created_by"] == 5
        assert create_kw["credential_hash"] == "$2b$04$hash"
        ledger.recharge.assert_awaited_once_with(
            db, 42, 5,
            unit_price_cents=None,
            total_price_cents=9000,
            transaction_type=TransactionType.RESELLER_CREATION,
        )
        db.begin_nested.assert_called_once()
        db.commit.assert_awaited_once()

    async def test_existing_email_reuses_account(self) -> None:
        prov = self._provisioning()
        svc, repo, _, ledger, admins = _make_service(
            payment=_make_payment(status="PENDING_RESELLER", provisioning=prov)
        )
        repo.mark_paid.return_value = _make_payment(status="PAID", provisioning=prov)
        admins.create.return_value = None
        admins.get_by_email.return_value = _make_admin(admin_id=77, rank="reseller")

        outcome = await svc.settle(_make_db(), "T123", "PAID")

        assert outcome.result == SettlementResult.SETTLED
        assert outcome.created_admin_id is None
        assert outcome.credited_admin_id == 77
        ledger.recharge.assert_awaited_once()

    async def test_audit_entry_failure_does_not_block_settlement(self) -> None:
        prov = self._provisioning()
        svc, repo, _, ledger, admins = _make_service(
            payment=_make_payment(status="PENDING_RESELLER", provisioning=prov)
        )
        repo.mark_paid.return_value = _make_payment(status="PAID", provisioning=prov)
        admins.create.return_value = _make_admin(admin_id=42, rank="reseller")
        ledger.recharge.side_effect = RuntimeError("ledger insert failed")
        db = _make_db()

        outcome = await svc.settle(db, "T123", "PAID")

        assert outcome.result == SettlementResult.SETTLED
        assert outcome.created_admin_id == 42
        assert outcome.credited_admin_id is None
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()


class TestPoll:
    async def test_other_admins_payment_is_not_found(self) -> None:
        svc, *_ = _make_service(payment=_make_payment())
        with pytest.raises(PaymentNotFoundError):
            await svc.poll(_make_db(), _make_admin(admin_id=6), "T123")

    async def test_unknown_payment(self) -> None:
        svc, *_ = _make_service(payment=None)
        with pytest.raises(PaymentNotFoundError):
            await svc.poll(_make_db(), _make_admin(), "T404")

    async def test_pending_and_gateway_pending(self) -> None:
        svc, repo, gateway, ledger, _ = _make_service(payment=_make_payment())
        gateway.get_payment_status.return_value = "PENDING"

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.status == "PENDING"
        assert result.paid is False
        assert result.expired is False
        repo.mark_paid.assert_not_awaited()

    async def test_gateway_paid_triggers_settlement(self) -> None:
        svc, repo, gateway, ledger, _ = _make_service(payment=_make_payment())
        gateway.get_payment_status.return_value = "COMPLETED"
        repo.mark_paid.return_value = _make_payment(status="PAID")

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.status == "PAID"
        assert result.paid is True
        ledger.recharge.assert_awaited_once()

    async def test_late_confirmation_after_expiry_still_honoured(self) -> None:
        old = datetime.now(UTC) - timedelta(hours=2)
        svc, repo, gateway, ledger, _ = _make_service(payment=_make_payment(created_at=old))
        gateway.get_payment_status.return_value = "PAID"
        repo.mark_paid.return_value = _make_payment(status="PAID", created_at=old)

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.paid is True
        assert result.expired is False
        ledger.recharge.assert_awaited_once()

    async def test_expired_flag_when_still_pending(self) -> None:
        old = datetime.now(UTC) - timedelta(minutes=30)
        svc, _, gateway, _, _ = _make_service(payment=_make_payment(created_at=old))
        gateway.get_payment_status.return_value = "PENDING"

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.expired is True
        assert result.paid is False

    async def test_gateway_error_reports_stored_state(self) -> None:
        svc, _, gateway, ledger, _ = _make_service(payment=_make_payment())
        gateway.get_payment_status.side_effect = GatewayError()

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.status == "PENDING"
        ledger.recharge.assert_not_awaited()

    async def test_paid_payment_skips_gateway(self) -> None:
        svc, _, gateway, _, _ = _make_service(payment=_make_payment(status="PAID"))

        result = await svc.poll(_make_db(), _make_admin(), "T123")

        assert result.paid is True
        gateway.get_payment_status.assert_not_awaited()


class TestPendingProvisioning:
    def test_from_db_accepts_json_string(self) -> None:
        raw = json.dumps({"display_name": "A", "email": "a@x.com", "credential_hash": "h"})
        prov = PendingProvisioning.from_db(raw)
        assert prov == PendingProvisioning("A", "a@x.com", "h")

    def test_from_db_accepts_dict_and_none(self) -> None:
        assert PendingProvisioning.from_db(
            {"display_name": "A", "email": "a@x.com", "credential_hash": "h"}
        ) == PendingProvisioning("A", "a@x.com", "h")
        assert PendingProvisioning.from_db(None) is None

    def test_to_json_roundtrip_fields(self) -> None:
        data = json.loads(PendingProvisioning("A", "a@x.com", "h").to_json())
        assert data == {"display_name": "A", "email": "a@x.com", "credential_hash": "h"}
