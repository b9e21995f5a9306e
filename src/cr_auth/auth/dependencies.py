"""FastAPI dependencies: get_current_admin, require_rank.

Usage in any protected router:
    from src.cr_auth.auth.dependencies import get_current_admin

    @router.get("/protected")
    async def protected(admin: Admin = Depends(get_current_admin)):
        ...

Every privileged call re-checks the session token against the database, so
a login on another device logs this one out on its very next request.
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin
from src.cr_account.infrastructure.persistence import AdminRepository
from src.cr_auth.auth.jwt_handler import TOKEN_TYPE_ACCESS, TOKEN_TYPE_PIN, decode_token
from src.cr_auth.session.manager import SessionManager
from src.cr_common.database import get_db_session
from src.cr_common.enums import AdminRank
from src.cr_common.errors import PermissionDeniedError, SessionInvalidError

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button).
# auto_error=False so a missing header surfaces as SessionInvalidError in our envelope.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

_repo = AdminRepository()
_sessions = SessionManager(_repo)


async def get_current_admin(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Admin:
    """Resolve the Bearer token to a live Admin.

    Raises SessionInvalidError (HTTP 401) if the token is missing, malformed,
    expired, or its session is no longer the stored one.
    """
    if not token:
        raise SessionInvalidError()
    admin_id, session_token = decode_token(token, expected_type=TOKEN_TYPE_ACCESS)

    try:
        if not await _sessions.validate(db, admin_id, session_token):
            raise SessionInvalidError()
        admin = await _repo.get_by_id(db, admin_id)
        # Persist the last-active refresh and leave the session clean for the handler
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if admin is None:
        raise SessionInvalidError()
    return admin


async def get_pin_challenge(token: str | None = Depends(oauth2_scheme)) -> tuple[int, str]:
    """Decode a PIN challenge token into (admin_id, session_token).

    The session itself is validated by AuthService.submit_pin.
    """
    if not token:
        raise SessionInvalidError()
    return decode_token(token, expected_type=TOKEN_TYPE_PIN)


def require_rank(*ranks: AdminRank) -> Callable[..., Awaitable[Admin]]:
    """Dependency factory: the current admin must hold one of `ranks`."""
    allowed = {r.value for r in ranks}

    async def _dependency(admin: Admin = Depends(get_current_admin)) -> Admin:
        if admin.rank not in allowed:
            raise PermissionDeniedError(f"rank {' or '.join(sorted(allowed))} required")
        return admin

    return _dependency
