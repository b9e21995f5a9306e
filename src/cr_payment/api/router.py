"""cr_payment REST API — price table, PIX intents, polling and the gateway webhook."""

import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cr_account.domain.models import Admin
from src.cr_auth.auth.dependencies import get_current_admin, require_rank
from src.cr_common.database import get_db_session
from src.cr_common.enums import AdminRank
from src.cr_common.errors import WebhookUnauthorizedError
from src.cr_common.response import ApiResponse, success_response
from src.cr_payment.application.schemas import (
    CreatePixRequest,
    CreateResellerPixRequest,
    WebhookPayload,
)
from src.cr_payment.application.service import PaymentSettlementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentSettlementService()


def _check_webhook_secret(provided: str | None) -> None:
    expected = settings.PIX_WEBHOOK_SECRET
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise WebhookUnauthorizedError()


@router.get("/packages")
async def list_packages(request: Request) -> ApiResponse:
    resp = success_response(_service.list_packages().model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/pix", status_code=status.HTTP_201_CREATED)
async def create_pix(
    body: CreatePixRequest,
    current_admin: Annotated[Admin, Depends(require_rank(AdminRank.MASTER))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_pix_intent(
        db, current_admin, body.credits, body.expected_amount_cents
    )
    resp = success_response(data.model_dump(), message="PIX charge created")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/pix/reseller", status_code=status.HTTP_201_CREATED)
async def create_reseller_pix(
    body: CreateResellerPixRequest,
    current_admin: Annotated[Admin, Depends(require_rank(AdminRank.MASTER))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_reseller_intent(
        db, current_admin, body.display_name, body.email, body.secret
    )
    resp = success_response(data.model_dump(), message="PIX charge created")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/pix/webhook")
async def pix_webhook(
    body: WebhookPayload,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> ApiResponse:
    """Gateway callback. Known, unknown and replayed ids all get the same answer."""
    _check_webhook_secret(x_webhook_secret)
    outcome = await _service.settle(db, body.transaction_id, body.status)
    logger.info("Webhook processed: tx=%s result=%s", body.transaction_id, outcome.result.value)
    resp = success_response({"received": True})
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/pix/{transaction_id}")
async def get_pix_status(
    transaction_id: str,
    current_admin: Annotated[Admin, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.poll(db, current_admin, transaction_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
