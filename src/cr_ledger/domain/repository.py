"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock (or the in-memory fake in tests/unit) that conforms
to this Protocol. Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_ledger.domain.models import CreditTransaction, LockedAccount


class LedgerRepositoryProtocol(Protocol):
    async def lock_accounts(
        self, db: AsyncSession, admin_ids: list[int]
    ) -> dict[int, LockedAccount]: ...

    async def debit(self, db: AsyncSession, admin_id: int, amount: int) -> int | None: ...

    async def credit(self, db: AsyncSession, admin_id: int, amount: int) -> int | None: ...

    async def append(
        self,
        db: AsyncSession,
        from_admin_id: int | None,
        to_admin_id: int | None,
        amount: int,
        transaction_type: str,
        unit_price_cents: int | None = None,
        total_price_cents: int | None = None,
    ) -> CreditTransaction: ...

    async def get_balance(self, db: AsyncSession, admin_id: int) -> int | None: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        admin_id: int,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]: ...

    async def net_flow(self, db: AsyncSession, admin_id: int) -> int: ...
