"""Auth service: login, PIN second factor, logout.

Login always issues a new session (last login wins). Owners get an access
token straight away; masters and resellers get a PIN challenge token that
/auth/pin exchanges for an access token bound to the same session.

"Email not found" and "wrong secret" both raise InvalidCredentialsError.
"""

import logging
import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin
from src.cr_account.domain.repository import AdminRepositoryProtocol
from src.cr_account.infrastructure.persistence import AdminRepository
from src.cr_auth.auth.credentials import (
    decode_credential,
    hash_secret,
    needs_rehash,
    verify,
    verify_secret,
)
from src.cr_auth.auth.jwt_handler import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_PIN,
    create_access_token,
    create_pin_challenge_token,
)
from src.cr_auth.session.manager import SessionManager
from src.cr_common.errors import (
    InvalidCredentialsError,
    InvalidPinFormatError,
    SessionInvalidError,
)

logger = logging.getLogger(__name__)

_PIN_RE = re.compile(r"^\d{4}$")

# Well-formed bcrypt value that matches nothing; checked when the email is
# unknown so both failure paths cost one bcrypt round.
_DUMMY_HASH = "$2b$12$C6UzMDM.H6dfI/f/IKcEeO5b7Y7uIQ1Rze3cU0pWJ1Jg0jKxMYcXy"


@dataclass
class LoginResult:
    admin: Admin
    token: str
    token_type: str        # "access" or "pin"
    pin_registered: bool

    @property
    def requires_pin(self) -> bool:
        return self.token_type == TOKEN_TYPE_PIN


@dataclass
class PinResult:
    admin: Admin
    access_token: str
    pin_registered_now: bool


class AuthService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(
        self,
        repo: AdminRepositoryProtocol | None = None,
        sessions: SessionManager | None = None,
    ) -> None:
        self._repo: AdminRepositoryProtocol = repo or AdminRepository()
        self._sessions = sessions or SessionManager(self._repo)

    async def login(
        self,
        db: AsyncSession,
        email: str,
        secret: str,
        ip: str | None = None,
    ) -> LoginResult:
        admin = await self._repo.get_by_email(db, email)
        if admin is None:
            verify_secret(secret, _DUMMY_HASH)
            logger.warning("Login failed: unknown account ip=%s", ip)
            raise InvalidCredentialsError()

        credential = decode_credential(admin.credential_hash)
        if not verify(secret, credential):
            logger.warning("Login failed: admin=%s ip=%s", admin.id, ip)
            raise InvalidCredentialsError()

        try:
            if needs_rehash(credential):
                await self._repo.update_credential_hash(db, admin.id, hash_secret(secret))
                logger.info("Credential migrated to bcrypt: admin=%s", admin.id)
            session_token = await self._sessions.issue(db, admin.id, ip)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if admin.is_owner:
            # Owner is implicitly trusted and skips the PIN step
            return LoginResult(
                admin=admin,
                token=create_access_token(admin.id, session_token),
                token_type=TOKEN_TYPE_ACCESS,
                pin_registered=admin.has_pin,
            )
        return LoginResult(
            admin=admin,
            token=create_pin_challenge_token(admin.id, session_token),
            token_type=TOKEN_TYPE_PIN,
            pin_registered=admin.has_pin,
        )

    async def submit_pin(
        self,
        db: AsyncSession,
        admin_id: int,
        session_token: str,
        pin: str,
    ) -> PinResult:
        """Verify the PIN, or register it when the account has none yet."""
        if not _PIN_RE.match(pin):
            raise InvalidPinFormatError()

        try:
            if not await self._sessions.validate(db, admin_id, session_token):
                raise SessionInvalidError()
            admin = await self._repo.get_by_id(db, admin_id)
            if admin is None:
                raise SessionInvalidError()

            registered_now = False
            if not admin.has_pin:
                await self._repo.set_pin(db, admin_id, hash_secret(pin))
                registered_now = True
                logger.info("PIN registered: admin=%s", admin_id)
            elif not verify_secret(pin, admin.pin):
                logger.warning("PIN rejected: admin=%s", admin_id)
                raise InvalidCredentialsError()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        return PinResult(
            admin=admin,
            access_token=create_access_token(admin_id, session_token),
            pin_registered_now=registered_now,
        )

    async def logout(self, db: AsyncSession, admin_id: int) -> None:
        try:
            await self._sessions.revoke(db, admin_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
