"""cr_account REST API — profile, children, owner-side account creation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.application.schemas import CreateAdminRequest
from src.cr_account.application.service import AccountApplicationService
from src.cr_account.domain.models import Admin
from src.cr_auth.auth.dependencies import get_current_admin, require_rank
from src.cr_common.database import get_db_session
from src.cr_common.enums import AdminRank
from src.cr_common.response import ApiResponse, success_response

router = APIRouter(prefix="/admins", tags=["admins"])

_service = AccountApplicationService()


@router.get("/me")
async def get_me(
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_admin(db, current_admin.id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/children")
async def list_children(
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_children(db, current_admin.id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_admin(
    body: CreateAdminRequest,
    current_admin: Annotated[Admin, Depends(require_rank(AdminRank.OWNER))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_admin(
        db,
        creator=current_admin,
        display_name=body.display_name,
        email=body.email,
        secret=body.secret,
        rank=body.rank,
    )
    resp = success_response(data.model_dump(), message="Admin created")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
