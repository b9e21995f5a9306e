"""cr_ledger REST API — balance, transfer, history, owner recharge."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cr_account.domain.models import Admin
from src.cr_auth.auth.dependencies import get_current_admin, require_rank
from src.cr_common.database import get_db_session
from src.cr_common.enums import AdminRank, TransactionType
from src.cr_common.errors import PermissionDeniedError
from src.cr_common.response import ApiResponse, success_response
from src.cr_ledger.application.schemas import (
    RechargeRequest,
    RechargeResponse,
    TransferRequest,
    TransferResponse,
)
from src.cr_ledger.application.service import LedgerService

router = APIRouter(prefix="/credits", tags=["credits"])

_service = LedgerService()


@router.get("/balance")
async def get_balance(
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, current_admin.id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/transfer")
async def transfer(
    body: TransferRequest,
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.transfer(db, current_admin.id, body.to_admin_id, body.amount)
    data = TransferResponse(
        transaction_id=result.transaction.id,
        to_admin_id=body.to_admin_id,
        amount=body.amount,
        balance=result.payer_balance,
    )
    resp = success_response(data.model_dump(), message="Transfer completed")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/transactions")
async def list_transactions(
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    transaction_type: TransactionType | None = Query(None, description="Filter by type"),
) -> ApiResponse:
    data = await _service.list_transactions(
        db,
        current_admin.id,
        cursor,
        limit,
        transaction_type.value if transaction_type else None,
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/reconcile")
async def reconcile(
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    admin_id: int | None = Query(None, description="Owner only: account to audit"),
) -> ApiResponse:
    target = current_admin.id
    if admin_id is not None and admin_id != current_admin.id:
        if not current_admin.is_owner:
            raise PermissionDeniedError("only the owner may audit other accounts")
        target = admin_id
    data = await _service.reconcile(db, target)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/recharge")
async def recharge(
    body: RechargeRequest,
    current_admin: Annotated[Admin, Depends(require_rank(AdminRank.OWNER))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.manual_recharge(
        db, body.admin_id, body.amount, unit_price_cents=body.unit_price_cents
    )
    data = RechargeResponse(
        transaction_id=result.transaction.id,
        admin_id=body.admin_id,
        amount=body.amount,
        balance=result.balance,
    )
    resp = success_response(data.model_dump(), message="Recharge completed")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
