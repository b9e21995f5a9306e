"""Unit tests for get_current_admin / get_pin_challenge / require_rank."""

from unittest.mock import AsyncMock

import pytest

from src.cr_account.domain.models import Admin
from src.cr_auth.auth import dependencies as deps
from src.cr_auth.auth.jwt_handler import create_access_token, create_pin_challenge_token
from src.cr_common.enums import AdminRank
from src.cr_common.errors import PermissionDeniedError, SessionInvalidError


def _admin(rank: str = "master") -> Admin:
    return Admin(
        id=5, display_name="Maria", email="m@example.com", rank=rank, balance=0,
        credential_hash="x",
    )


@pytest.fixture
def sessions(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock = AsyncMock()
    mock.validate.return_value = True
    monkeypatch.setattr(deps, "_sessions", mock)
    return mock


@pytest.fixture
def repo(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock = AsyncMock()
    mock.get_by_id.return_value = _admin()
    monkeypatch.setattr(deps, "_repo", mock)
    return mock


class TestGetCurrentAdmin:
    async def test_valid_token_and_live_session(self, sessions: AsyncMock, repo: AsyncMock) -> None:
        db = AsyncMock()
        admin = await deps.get_current_admin(token=create_access_token(5, "sid-1"), db=db)

        assert admin.id == 5
        sessions.validate.assert_awaited_once_with(db, 5, "sid-1")
        db.commit.assert_awaited_once()

    async def test_missing_token(self, sessions: AsyncMock, repo: AsyncMock) -> None:
        with pytest.raises(SessionInvalidError):
            await deps.get_current_admin(token=None, db=AsyncMock())

    async def test_superseded_session(self, sessions: AsyncMock, repo: AsyncMock) -> None:
        sessions.validate.return_value = False
        db = AsyncMock()
        with pytest.raises(SessionInvalidError):
            await deps.get_current_admin(token=create_access_token(5, "old"), db=db)
        db.rollback.assert_awaited_once()

    async def test_pin_token_not_accepted(self, sessions: AsyncMock, repo: AsyncMock) -> None:
        with pytest.raises(SessionInvalidError):
            await deps.get_current_admin(
                token=create_pin_challenge_token(5, "sid-1"), db=AsyncMock()
            )
        sessions.validate.assert_not_awaited()

    async def test_deleted_admin(self, sessions: AsyncMock, repo: AsyncMock) -> None:
        repo.get_by_id.return_value = None
        with pytest.raises(SessionInvalidError):
            await deps.get_current_admin(token=create_access_token(5, "sid-1"), db=AsyncMock())


class TestGetPinChallenge:
    async def test_returns_pair(self) -> None:
        token = create_pin_challenge_token(5, "sid-1")
        assert await deps.get_pin_challenge(token=token) == (5, "sid-1")

    async def test_access_token_rejected(self) -> None:
        with pytest.raises(SessionInvalidError):
            await deps.get_pin_challenge(token=create_access_token(5, "sid-1"))


class TestRequireRank:
    async def test_allowed_rank_passes(self) -> None:
        check = deps.require_rank(AdminRank.OWNER, AdminRank.MASTER)
        admin = _admin("master")
        assert await check(admin=admin) is admin

    async def test_other_rank_denied(self) -> None:
        check = deps.require_rank(AdminRank.OWNER)
        with pytest.raises(PermissionDeniedError):
            await check(admin=_admin("reseller"))
