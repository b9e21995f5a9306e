"""External reference ids.

Database rows keep their BIGSERIAL primary keys; these strings only travel
outside the database (gateway identifiers, request correlation ids).
"""

import secrets
import string
import time
import uuid

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def payment_identifier(admin_id: int) -> str:
    """Gateway-side reference for a new PIX intent.

    Format: ADMIN_{admin_id}_{epoch_ms}_{random base36}, e.g.
    'ADMIN_5_1767225600000_k3j9x0q2m1za'. The gateway echoes it back in its
    dashboard, so the admin id stays readable.
    """
    suffix = _base36(secrets.randbits(64))
    return f"ADMIN_{admin_id}_{int(time.time() * 1000)}_{suffix}"


def request_id() -> str:
    """Short correlation id for logs and the response envelope: 'req_a1b2c3d4e5f6'."""
    return f"req_{uuid.uuid4().hex[:12]}"
