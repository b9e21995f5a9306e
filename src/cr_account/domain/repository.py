"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.

The account store never touches `balance`; only the ledger does.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin


class AdminRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, admin_id: int) -> Admin | None: ...

    async def get_by_email(self, db: AsyncSession, email: str) -> Admin | None: ...

    async def create(
        self,
        db: AsyncSession,
        display_name: str,
        email: str,
        credential_hash: str,
        rank: str,
        created_by: int | None,
    ) -> Admin | None: ...

    async def list_children(self, db: AsyncSession, created_by: int) -> list[Admin]: ...

    async def set_session_token(
        self, db: AsyncSession, admin_id: int, token: str | None, ip: str | None
    ) -> None: ...

    async def get_session_token(self, db: AsyncSession, admin_id: int) -> str | None: ...

    async def touch_last_active(self, db: AsyncSession, admin_id: int) -> None: ...

    async def update_credential_hash(
        self, db: AsyncSession, admin_id: int, credential_hash: str
    ) -> None: ...

    async def set_pin(self, db: AsyncSession, admin_id: int, pin_hash: str) -> None: ...
