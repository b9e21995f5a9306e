"""JWT transport for the account-id + session-token pair.

The JWT is only an envelope: `sub` carries the admin id and `sid` the
opaque session token stored on the admins row. A valid signature alone
grants nothing; the `sid` must still match the Session Manager, so a newer
login invalidates every token issued before it.

Token types:
  - "pin":    short-lived, accepted only by the PIN endpoint
  - "access": required by every privileged endpoint
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.cr_common.errors import SessionInvalidError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_PIN_EXPIRE = timedelta(minutes=settings.PIN_CHALLENGE_EXPIRE_MINUTES)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_PIN = "pin"


def _encode(admin_id: int, session_token: str, token_type: str, ttl: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(admin_id),
        "sid": session_token,
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(admin_id: int, session_token: str) -> str:
    return _encode(admin_id, session_token, TOKEN_TYPE_ACCESS, _ACCESS_EXPIRE)


def create_pin_challenge_token(admin_id: int, session_token: str) -> str:
    """Issued by login to master/reseller accounts; exchanged for an access token at /auth/pin."""
    return _encode(admin_id, session_token, TOKEN_TYPE_PIN, _PIN_EXPIRE)


def access_expires_in_seconds() -> int:
    return int(_ACCESS_EXPIRE.total_seconds())


def decode_token(token: str, expected_type: str) -> tuple[int, str]:
    """Decode and validate a JWT, returning (admin_id, session_token).

    expected_type is strictly enforced so a PIN challenge token can never be
    used as an access token.

    Raises:
        SessionInvalidError: bad signature, expired, wrong type or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise SessionInvalidError() from None

    if payload.get("type") != expected_type:
        raise SessionInvalidError()

    sub = payload.get("sub")
    sid = payload.get("sid")
    if not sub or not sid:
        raise SessionInvalidError()
    try:
        return int(sub), str(sid)
    except ValueError:
        raise SessionInvalidError() from None
