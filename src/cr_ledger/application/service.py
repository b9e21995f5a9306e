"""LedgerService — the only writer of balances and credit_transactions.

transfer() and manual_recharge() own their transaction: commit on success,
rollback on any exception. recharge() runs inside the CALLER's transaction
so settlement can credit and flip the payment status atomically.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_common.enums import AdminRank, TransactionType
from src.cr_common.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidTransferError,
    PermissionDeniedError,
)
from src.cr_ledger.application.schemas import (
    BalanceResponse,
    ReconcileResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.cr_ledger.domain.models import RechargeResult, TransferResult
from src.cr_ledger.domain.repository import LedgerRepositoryProtocol
from src.cr_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def transfer(
        self,
        db: AsyncSession,
        from_admin_id: int,
        to_admin_id: int,
        amount: int,
        enforce_hierarchy: bool = True,
    ) -> TransferResult:
        """Move `amount` credits from payer to payee in one transaction.

        Either the debit, the credit and the ledger row all commit, or
        none of them do. A failed transfer leaves both balances untouched.
        """
        if amount <= 0:
            raise InvalidTransferError("amount must be positive")
        if from_admin_id == to_admin_id:
            raise InvalidTransferError("payer and payee must differ")

        try:
            locked = await self._repo.lock_accounts(db, [from_admin_id, to_admin_id])
            payer = locked.get(from_admin_id)
            if payer is None:
                raise AccountNotFoundError(from_admin_id)
            payee = locked.get(to_admin_id)
            if payee is None:
                raise AccountNotFoundError(to_admin_id)

            if (
                enforce_hierarchy
                and payer.rank != AdminRank.OWNER
                and payee.created_by != payer.id
            ):
                raise PermissionDeniedError("payee was not created by this account")

            if payer.balance < amount:
                raise InsufficientFundsError(required=amount, available=payer.balance)

            payer_balance = await self._repo.debit(db, from_admin_id, amount)
            if payer_balance is None:
                # Row is locked, so only a concurrent bug could land here
                raise InsufficientFundsError(required=amount, available=payer.balance)
            payee_balance = await self._repo.credit(db, to_admin_id, amount)
            if payee_balance is None:
                raise AccountNotFoundError(to_admin_id)

            tx = await self._repo.append(
                db,
                from_admin_id=from_admin_id,
                to_admin_id=to_admin_id,
                amount=amount,
                transaction_type=TransactionType.TRANSFER.value,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Transfer committed: tx=%s from=%s to=%s amount=%s",
            tx.id, from_admin_id, to_admin_id, amount,
        )
        return TransferResult(
            transaction=tx, payer_balance=payer_balance, payee_balance=payee_balance
        )

    async def recharge(
        self,
        db: AsyncSession,
        admin_id: int,
        amount: int,
        unit_price_cents: int | None = None,
        total_price_cents: int | None = None,
        transaction_type: TransactionType = TransactionType.RECHARGE,
    ) -> RechargeResult:
        """Credit an account from outside the ledger (PIX, provisioning, owner).

        Does NOT commit: the caller owns the transaction.
        """
        if amount <= 0:
            raise InvalidTransferError("amount must be positive")

        balance = await self._repo.credit(db, admin_id, amount)
        if balance is None:
            raise AccountNotFoundError(admin_id)
        tx = await self._repo.append(
            db,
            from_admin_id=None,
            to_admin_id=admin_id,
            amount=amount,
            transaction_type=TransactionType(transaction_type).value,
            unit_price_cents=unit_price_cents,
            total_price_cents=total_price_cents,
        )
        return RechargeResult(transaction=tx, balance=balance)

    async def manual_recharge(
        self,
        db: AsyncSession,
        admin_id: int,
        amount: int,
        unit_price_cents: int | None = None,
    ) -> RechargeResult:
        total = unit_price_cents * amount if unit_price_cents is not None else None
        try:
            result = await self.recharge(
                db, admin_id, amount,
                unit_price_cents=unit_price_cents,
                total_price_cents=total,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Manual recharge: admin=%s amount=%s tx=%s", admin_id, amount, result.transaction.id)
        return result

    async def get_balance(self, db: AsyncSession, admin_id: int) -> BalanceResponse:
        balance = await self._repo.get_balance(db, admin_id)
        if balance is None:
            raise AccountNotFoundError(admin_id)
        return BalanceResponse(admin_id=admin_id, balance=balance)

    async def list_transactions(
        self,
        db: AsyncSession,
        admin_id: int,
        cursor: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._repo.list_transactions(
            db, admin_id, cursor_id, limit + 1, transaction_type
        )
        has_more = len(rows) > limit
        page = rows[:limit]

        items = [TransactionItem.from_domain(tx, admin_id) for tx in page]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def reconcile(self, db: AsyncSession, admin_id: int) -> ReconcileResponse:
        """Compare the stored balance with the sum of the account's ledger rows."""
        balance = await self._repo.get_balance(db, admin_id)
        if balance is None:
            raise AccountNotFoundError(admin_id)
        net = await self._repo.net_flow(db, admin_id)
        if balance != net:
            logger.warning(
                "Ledger drift: admin=%s balance=%s ledger_net=%s", admin_id, balance, net
            )
        return ReconcileResponse(
            admin_id=admin_id, balance=balance, ledger_net=net, difference=balance - net
        )
