"""Single-session manager.

One nullable `session_token` column per admin acts as a single-writer
flag, not a lock: `issue` overwrites whatever token was there, so the last
login wins and every older device observes a mismatch on its next call.
This is intended behaviour. There is no revocation list because only the
stored token is ever valid.

State per admin: LOGGED_OUT (token NULL) -> LOGGED_IN (token T) -> LOGGED_OUT.

Writes run in the caller's session; the caller commits.
"""

import hmac
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.repository import AdminRepositoryProtocol
from src.cr_account.infrastructure.persistence import AdminRepository

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, repo: AdminRepositoryProtocol | None = None) -> None:
        self._repo: AdminRepositoryProtocol = repo or AdminRepository()

    async def issue(self, db: AsyncSession, admin_id: int, ip: str | None = None) -> str:
        """Generate and store a fresh token, invalidating any previous one immediately."""
        token = uuid.uuid4().hex
        await self._repo.set_session_token(db, admin_id, token, ip)
        logger.info("Session issued: admin=%s ip=%s", admin_id, ip)
        return token

    async def validate(self, db: AsyncSession, admin_id: int, token: str | None) -> bool:
        """True iff the stored token is non-null and equals `token`.

        On success refreshes last_active_at. That refresh is not transactional
        with anything else; a last-active value stale by one request is fine.
        """
        if not token:
            return False
        stored = await self._repo.get_session_token(db, admin_id)
        if stored is None or not hmac.compare_digest(stored, token):
            return False
        await self._repo.touch_last_active(db, admin_id)
        return True

    async def revoke(self, db: AsyncSession, admin_id: int) -> None:
        await self._repo.set_session_token(db, admin_id, None, None)
        logger.info("Session revoked: admin=%s", admin_id)
