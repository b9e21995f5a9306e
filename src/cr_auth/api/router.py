"""Auth API router: login, PIN step, logout, session check.

All endpoints return ApiResponse. request_id is read from
request.state (injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin
from src.cr_auth.api.schemas import (
    AdminInfo,
    LoginRequest,
    LoginResponse,
    PinRequest,
    PinResponse,
    SessionStatusResponse,
)
from src.cr_auth.application.service import AuthService
from src.cr_auth.auth.dependencies import get_current_admin, get_pin_challenge
from src.cr_auth.auth.jwt_handler import access_expires_in_seconds
from src.cr_auth.middleware.rate_limit import client_ip
from src.cr_common.database import get_db_session
from src.cr_common.response import ApiResponse, success_response

router = APIRouter(prefix="/auth", tags=["auth"])
_service = AuthService()


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


def _admin_info(admin: Admin) -> AdminInfo:
    return AdminInfo(
        admin_id=admin.id,
        display_name=admin.display_name,
        email=admin.email,
        rank=admin.rank,
        balance=admin.balance,
    )


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Admin login",
)
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.login(db, body.email, body.secret, client_ip(request))

    data = LoginResponse(
        token=result.token,
        token_type=result.token_type,
        requires_pin=result.requires_pin,
        pin_registered=result.pin_registered,
        admin=_admin_info(result.admin),
    )
    resp = success_response(data.model_dump())
    resp.request_id = _get_request_id(request)
    resp.message = "PIN required" if result.requires_pin else "Login successful"
    return resp


@router.post(
    "/pin",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Verify or register the 4-digit PIN",
)
async def submit_pin(
    request: Request,
    body: PinRequest,
    challenge: Annotated[tuple[int, str], Depends(get_pin_challenge)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    admin_id, session_token = challenge
    result = await _service.submit_pin(db, admin_id, session_token, body.pin)

    data = PinResponse(
        access_token=result.access_token,
        expires_in=access_expires_in_seconds(),
        pin_registered_now=result.pin_registered_now,
        admin=_admin_info(result.admin),
    )
    resp = success_response(data.model_dump())
    resp.request_id = _get_request_id(request)
    resp.message = "PIN registered" if result.pin_registered_now else "Login successful"
    return resp


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Revoke the current session",
)
async def logout(
    request: Request,
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.logout(db, current_admin.id)
    resp = success_response(None, message="Logged out")
    resp.request_id = _get_request_id(request)
    return resp


@router.get(
    "/session",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Check that this device still holds the live session",
)
async def check_session(
    request: Request,
    current_admin: Annotated[Admin, Depends(get_current_admin)],
) -> ApiResponse:
    # Reaching here means get_current_admin matched the session token
    data = SessionStatusResponse(valid=True, admin_id=current_admin.id)
    resp = success_response(data.model_dump())
    resp.request_id = _get_request_id(request)
    return resp
