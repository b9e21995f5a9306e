"""AccountApplicationService — thin composition layer over AdminRepository.

Creation commits its own transaction; reads run without one.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.application.schemas import AdminDetail, ChildrenResponse
from src.cr_account.domain.models import Admin
from src.cr_account.domain.repository import AdminRepositoryProtocol
from src.cr_account.infrastructure.persistence import AdminRepository
from src.cr_auth.auth.credentials import hash_secret
from src.cr_common.enums import AdminRank
from src.cr_common.errors import AccountNotFoundError, EmailExistsError, PermissionDeniedError

logger = logging.getLogger(__name__)

_CREATABLE_RANKS = frozenset({AdminRank.MASTER.value, AdminRank.RESELLER.value})


class AccountApplicationService:
    def __init__(self, repo: AdminRepositoryProtocol | None = None) -> None:
        self._repo: AdminRepositoryProtocol = repo or AdminRepository()

    async def get_admin(self, db: AsyncSession, admin_id: int) -> AdminDetail:
        admin = await self._repo.get_by_id(db, admin_id)
        if admin is None:
            raise AccountNotFoundError(admin_id)
        return AdminDetail.from_domain(admin)

    async def list_children(self, db: AsyncSession, admin_id: int) -> ChildrenResponse:
        children = await self._repo.list_children(db, admin_id)
        return ChildrenResponse(
            items=[AdminDetail.from_domain(a) for a in children],
            total=len(children),
        )

    async def create_admin(
        self,
        db: AsyncSession,
        creator: Admin,
        display_name: str,
        email: str,
        secret: str,
        rank: str,
    ) -> AdminDetail:
        """Create a master or reseller with zero balance, owned by `creator`."""
        if rank not in _CREATABLE_RANKS:
            raise PermissionDeniedError(f"cannot create rank {rank}")

        try:
            if await self._repo.get_by_email(db, email) is not None:
                raise EmailExistsError()
            admin = await self._repo.create(
                db,
                display_name=display_name.strip(),
                email=email,
                credential_hash=hash_secret(secret),
                rank=rank,
                created_by=creator.id,
            )
            # ON CONFLICT DO NOTHING: a concurrent creation won the race
            if admin is None:
                raise EmailExistsError()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Admin created: id=%s rank=%s by=%s", admin.id, rank, creator.id)
        return AdminDetail.from_domain(admin)
