"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

The only code that writes admins.balance or credit_transactions.

Balance writes are atomic PostgreSQL UPDATE ... RETURNING. The debit also
carries a `balance >= :amount` guard, so even a caller that skipped the
FOR UPDATE read cannot overdraw; the CHECK (balance >= 0) constraint is
the last line.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from sqlalchemy import bindparam, case, func, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_common.errors import InternalError
from src.cr_ledger.domain.models import CreditTransaction, LockedAccount
from src.cr_ledger.infrastructure.db_models import CreditTransactionORM

# ---------------------------------------------------------------------------
# SQL: balance mutations
# ---------------------------------------------------------------------------

# Ascending id order: two opposite transfers (A→B, B→A) lock rows in the
# same order and serialise instead of deadlocking.
_LOCK_ACCOUNTS_SQL = text("""
    SELECT id, rank, created_by, balance
    FROM admins
    WHERE id IN :ids
    ORDER BY id
    FOR UPDATE
""").bindparams(bindparam("ids", expanding=True))

_DEBIT_SQL = text("""
    UPDATE admins
    SET balance = balance - :amount,
        last_active_at = NOW()
    WHERE id = :admin_id AND balance >= :amount
    RETURNING balance
""")

_CREDIT_SQL = text("""
    UPDATE admins
    SET balance = balance + :amount
    WHERE id = :admin_id
    RETURNING balance
""")

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO credit_transactions
        (from_admin_id, to_admin_id, amount, unit_price_cents, total_price_cents,
         transaction_type)
    VALUES
        (:from_admin_id, :to_admin_id, :amount, :unit_price_cents, :total_price_cents,
         :transaction_type)
    RETURNING id, from_admin_id, to_admin_id, amount, unit_price_cents,
              total_price_cents, transaction_type, created_at
""")

_GET_BALANCE_SQL = text("""
    SELECT balance FROM admins WHERE id = :admin_id
""")


def _row_to_transaction(row: object) -> CreditTransaction:
    return CreditTransaction(
        id=row.id,  # type: ignore[attr-defined]
        from_admin_id=row.from_admin_id,  # type: ignore[attr-defined]
        to_admin_id=row.to_admin_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        unit_price_cents=row.unit_price_cents,  # type: ignore[attr-defined]
        total_price_cents=row.total_price_cents,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def lock_accounts(
        self, db: AsyncSession, admin_ids: list[int]
    ) -> dict[int, LockedAccount]:
        result = await db.execute(_LOCK_ACCOUNTS_SQL, {"ids": sorted(set(admin_ids))})
        return {
            row.id: LockedAccount(
                id=row.id,
                rank=row.rank,
                created_by=row.created_by,
                balance=row.balance,
            )
            for row in result.fetchall()
        }

    async def debit(self, db: AsyncSession, admin_id: int, amount: int) -> int | None:
        """Returns the new balance, or None if the guard rejected the debit."""
        result = await db.execute(_DEBIT_SQL, {"admin_id": admin_id, "amount": amount})
        row = result.fetchone()
        return row.balance if row else None

    async def credit(self, db: AsyncSession, admin_id: int, amount: int) -> int | None:
        """Returns the new balance, or None if the account does not exist."""
        result = await db.execute(_CREDIT_SQL, {"admin_id": admin_id, "amount": amount})
        row = result.fetchone()
        return row.balance if row else None

    async def append(
        self,
        db: AsyncSession,
        from_admin_id: int | None,
        to_admin_id: int | None,
        amount: int,
        transaction_type: str,
        unit_price_cents: int | None = None,
        total_price_cents: int | None = None,
    ) -> CreditTransaction:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "from_admin_id": from_admin_id,
                "to_admin_id": to_admin_id,
                "amount": amount,
                "unit_price_cents": unit_price_cents,
                "total_price_cents": total_price_cents,
                "transaction_type": transaction_type,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_transaction(row)

    async def get_balance(self, db: AsyncSession, admin_id: int) -> int | None:
        result = await db.execute(_GET_BALANCE_SQL, {"admin_id": admin_id})
        row = result.fetchone()
        return row.balance if row else None

    async def list_transactions(
        self,
        db: AsyncSession,
        admin_id: int,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]:
        t = CreditTransactionORM
        stmt = select(t).where(or_(t.from_admin_id == admin_id, t.to_admin_id == admin_id))
        if cursor_id is not None:
            stmt = stmt.where(t.id < cursor_id)
        if transaction_type is not None:
            stmt = stmt.where(t.transaction_type == transaction_type)
        result = await db.execute(stmt.order_by(t.id.desc()).limit(limit))
        return [_row_to_transaction(obj) for obj in result.scalars().all()]

    async def net_flow(self, db: AsyncSession, admin_id: int) -> int:
        """Credits received minus credits sent, over the whole ledger."""
        t = CreditTransactionORM
        stmt = select(
            func.coalesce(
                func.sum(
                    case((t.to_admin_id == admin_id, t.amount), else_=0)
                    - case((t.from_admin_id == admin_id, t.amount), else_=0)
                ),
                0,
            )
        ).where(or_(t.from_admin_id == admin_id, t.to_admin_id == admin_id))
        result = await db.execute(stmt)
        return int(result.scalar_one())
