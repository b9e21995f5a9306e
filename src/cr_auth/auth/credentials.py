"""Credential decoding and verification.

Stored secrets (login keys and PINs) come in two formats: legacy plaintext
rows and bcrypt hashes. Older rows were hashed by PHP and carry the `$2y$`
prefix, which is the same algorithm as `$2a$`.

A stored value is decoded once into a tagged Credential and verified
without re-sniffing. Uses the ``bcrypt`` library directly (>=4.0).
"""

import hmac
import logging
from dataclasses import dataclass

import bcrypt

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
_LEGACY_PREFIX = "$2y$"
_NATIVE_PREFIX = "$2a$"


@dataclass(frozen=True)
class Plaintext:
    value: str


@dataclass(frozen=True)
class Hashed:
    algorithm: str
    normalized: str
    original: str


Credential = Plaintext | Hashed


def decode_credential(stored: str | None) -> Credential:
    """Sniff the prefix of a stored secret. Empty/None decodes to an unmatchable Plaintext("")."""
    if not stored:
        return Plaintext("")
    if stored.startswith(_BCRYPT_PREFIXES):
        normalized = stored
        if stored.startswith(_LEGACY_PREFIX):
            normalized = _NATIVE_PREFIX + stored[len(_LEGACY_PREFIX):]
        return Hashed(algorithm="bcrypt", normalized=normalized, original=stored)
    return Plaintext(stored.strip())


def verify(provided: str, credential: Credential) -> bool:
    """Return True if `provided` matches. Never raises."""
    if isinstance(credential, Hashed):
        matched = _check_bcrypt(provided, credential.normalized)
        if not matched and credential.normalized != credential.original:
            matched = _check_bcrypt(provided, credential.original)
    else:
        matched = bool(credential.value) and hmac.compare_digest(
            provided.strip().encode("utf-8"), credential.value.encode("utf-8")
        )
    logger.debug(
        "credential check: format=%s matched=%s",
        "bcrypt" if isinstance(credential, Hashed) else "plaintext",
        matched,
    )
    return matched


def verify_secret(provided: str, stored: str | None) -> bool:
    """Convenience wrapper: decode then verify."""
    return verify(provided, decode_credential(stored))


def needs_rehash(credential: Credential) -> bool:
    """Plaintext credentials are upgraded to bcrypt after a successful login."""
    return isinstance(credential, Plaintext)


def hash_secret(plain: str) -> str:
    """Hash a secret with bcrypt. Returns a utf-8 hash string."""
    hashed_bytes: bytes = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt())
    return hashed_bytes.decode("utf-8")


def _check_bcrypt(provided: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(provided.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed salt / unsupported variant: a non-match, not a crash
        return False
