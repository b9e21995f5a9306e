"""Unit tests for the JWT session envelope."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.cr_auth.auth.jwt_handler import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_PIN,
    create_access_token,
    create_pin_challenge_token,
    decode_token,
)
from src.cr_common.errors import SessionInvalidError


def test_access_token_claims() -> None:
    token = create_access_token(7, "sess-abc")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "7"
    assert payload["sid"] == "sess-abc"
    assert payload["type"] == "access"


def test_decode_returns_id_and_session() -> None:
    token = create_access_token(7, "sess-abc")
    assert decode_token(token, expected_type=TOKEN_TYPE_ACCESS) == (7, "sess-abc")


def test_pin_token_rejected_as_access() -> None:
    token = create_pin_challenge_token(7, "sess-abc")
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_ACCESS)


def test_access_token_rejected_at_pin_step() -> None:
    token = create_access_token(7, "sess-abc")
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_PIN)


def test_bad_signature_rejected() -> None:
    token = jwt.encode(
        {"sub": "7", "sid": "s", "type": "access"}, "other-secret", algorithm="HS256"
    )
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_ACCESS)


def test_expired_token_rejected() -> None:
    past = datetime.now(UTC) - timedelta(minutes=5)
    token = jwt.encode(
        {"sub": "7", "sid": "s", "type": "access", "exp": past},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_ACCESS)


def test_missing_sid_rejected() -> None:
    token = jwt.encode(
        {"sub": "7", "type": "access"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_ACCESS)


def test_non_numeric_sub_rejected() -> None:
    token = jwt.encode(
        {"sub": "abc", "sid": "s", "type": "access"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(SessionInvalidError):
        decode_token(token, expected_type=TOKEN_TYPE_ACCESS)
