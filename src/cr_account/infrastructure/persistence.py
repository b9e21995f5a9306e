"""AdminRepository — concrete implementation of AdminRepositoryProtocol.

Reads go through the ORM mapping; writes are single-statement SQL.
`create` relies on the UNIQUE(email) constraint: ON CONFLICT DO NOTHING
returning no row means the email is already taken, which also covers two
concurrent creations of the same email.

Transaction ownership: The CALLER (application service or router) is responsible for
starting and committing the transaction.
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin
from src.cr_account.infrastructure.db_models import AdminORM

# ---------------------------------------------------------------------------
# SQL: admins mutations
# ---------------------------------------------------------------------------

_INSERT_ADMIN_SQL = text("""
    INSERT INTO admins (display_name, email, credential_hash, rank, created_by, balance)
    VALUES (:display_name, :email, :credential_hash, :rank, :created_by, 0)
    ON CONFLICT (email) DO NOTHING
    RETURNING id, display_name, email, rank, created_by, balance,
              credential_hash, pin, session_token, last_active_at, last_ip, created_at
""")

_SET_SESSION_SQL = text("""
    UPDATE admins
    SET session_token = :token,
        last_active_at = NOW(),
        last_ip = COALESCE(:ip, last_ip)
    WHERE id = :admin_id
""")

_CLEAR_SESSION_SQL = text("""
    UPDATE admins
    SET session_token = NULL
    WHERE id = :admin_id
""")

_GET_SESSION_SQL = text("""
    SELECT session_token FROM admins WHERE id = :admin_id
""")

_TOUCH_SQL = text("""
    UPDATE admins SET last_active_at = NOW() WHERE id = :admin_id
""")

_UPDATE_CREDENTIAL_SQL = text("""
    UPDATE admins SET credential_hash = :credential_hash WHERE id = :admin_id
""")

_SET_PIN_SQL = text("""
    UPDATE admins SET pin = :pin WHERE id = :admin_id
""")


def _orm_to_admin(obj: AdminORM) -> Admin:
    return Admin(
        id=obj.id,
        display_name=obj.display_name,
        email=obj.email,
        rank=obj.rank,
        balance=obj.balance,
        credential_hash=obj.credential_hash,
        created_by=obj.created_by,
        pin=obj.pin,
        session_token=obj.session_token,
        last_active_at=obj.last_active_at,
        last_ip=obj.last_ip,
        created_at=obj.created_at,
    )


def _row_to_admin(row: object) -> Admin:
    return Admin(
        id=row.id,  # type: ignore[attr-defined]
        display_name=row.display_name,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        rank=row.rank,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        credential_hash=row.credential_hash,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        pin=row.pin,  # type: ignore[attr-defined]
        session_token=row.session_token,  # type: ignore[attr-defined]
        last_active_at=row.last_active_at,  # type: ignore[attr-defined]
        last_ip=row.last_ip,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AdminRepository:
    """Concrete repository for the admins table (identity, session, secrets)."""

    async def get_by_id(self, db: AsyncSession, admin_id: int) -> Admin | None:
        result = await db.execute(select(AdminORM).where(AdminORM.id == admin_id))
        obj = result.scalar_one_or_none()
        return _orm_to_admin(obj) if obj is not None else None

    async def get_by_email(self, db: AsyncSession, email: str) -> Admin | None:
        result = await db.execute(
            select(AdminORM).where(AdminORM.email == email.strip().lower())
        )
        obj = result.scalar_one_or_none()
        return _orm_to_admin(obj) if obj is not None else None

    async def create(
        self,
        db: AsyncSession,
        display_name: str,
        email: str,
        credential_hash: str,
        rank: str,
        created_by: int | None,
    ) -> Admin | None:
        result = await db.execute(
            _INSERT_ADMIN_SQL,
            {
                "display_name": display_name,
                "email": email.strip().lower(),
                "credential_hash": credential_hash,
                "rank": rank,
                "created_by": created_by,
            },
        )
        row = result.fetchone()
        return _row_to_admin(row) if row else None

    async def list_children(self, db: AsyncSession, created_by: int) -> list[Admin]:
        result = await db.execute(
            select(AdminORM)
            .where(AdminORM.created_by == created_by)
            .order_by(AdminORM.display_name)
        )
        return [_orm_to_admin(obj) for obj in result.scalars().all()]

    async def set_session_token(
        self, db: AsyncSession, admin_id: int, token: str | None, ip: str | None
    ) -> None:
        if token is None:
            await db.execute(_CLEAR_SESSION_SQL, {"admin_id": admin_id})
            return
        await db.execute(_SET_SESSION_SQL, {"admin_id": admin_id, "token": token, "ip": ip})

    async def get_session_token(self, db: AsyncSession, admin_id: int) -> str | None:
        result = await db.execute(_GET_SESSION_SQL, {"admin_id": admin_id})
        row = result.fetchone()
        return row.session_token if row else None

    async def touch_last_active(self, db: AsyncSession, admin_id: int) -> None:
        await db.execute(_TOUCH_SQL, {"admin_id": admin_id})

    async def update_credential_hash(
        self, db: AsyncSession, admin_id: int, credential_hash: str
    ) -> None:
        await db.execute(
            _UPDATE_CREDENTIAL_SQL,
            {"admin_id": admin_id, "credential_hash": credential_hash},
        )

    async def set_pin(self, db: AsyncSession, admin_id: int, pin_hash: str) -> None:
        await db.execute(_SET_PIN_SQL, {"admin_id": admin_id, "pin": pin_hash})
