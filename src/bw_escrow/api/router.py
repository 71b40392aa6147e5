"""bw_escrow REST API — 5 endpoints.

JWT auth on buyer/seller endpoints; the fee preview is public; the payment
webhook authenticates with the shared X-Webhook-Secret header.
"""

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bw_common.database import get_db_session
from src.bw_common.errors import InvalidWebhookSecretError
from src.bw_common.response import ApiResponse, request_id_of, success_response
from src.bw_escrow.application.schemas import (
    ConfirmEscrowRequest,
    InitiateEscrowRequest,
    PaymentSuccessWebhook,
)
from src.bw_escrow.application.service import EscrowLedger
from src.bw_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/escrow", tags=["escrow"])

_ledger = EscrowLedger()


def get_ledger() -> EscrowLedger:
    return _ledger


@router.post("/initiate")
async def initiate_escrow(
    body: InitiateEscrowRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    ledger: Annotated[EscrowLedger, Depends(get_ledger)],
    request: Request,
) -> ApiResponse:
    data = await ledger.initiate(
        db, user_id, body.listing_id, body.payment_provider, body.shipping_method
    )
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/confirm")
async def confirm_escrow(
    body: ConfirmEscrowRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    ledger: Annotated[EscrowLedger, Depends(get_ledger)],
    request: Request,
) -> ApiResponse:
    data = await ledger.confirm_receipt(db, user_id, body.order_id, body.confirmation_code)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.get("/order/{order_id}")
async def get_escrow_by_order(
    order_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    ledger: Annotated[EscrowLedger, Depends(get_ledger)],
    request: Request,
) -> ApiResponse:
    data = await ledger.get_for_party(db, order_id, user_id)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.get("/preview/{price_cents}")
async def preview_fees(
    price_cents: int,
    ledger: Annotated[EscrowLedger, Depends(get_ledger)],
    request: Request,
) -> ApiResponse:
    data = ledger.preview_fees(price_cents, settings.DEFAULT_CURRENCY)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/webhook/payment-success")
async def payment_success_webhook(
    body: PaymentSuccessWebhook,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    ledger: Annotated[EscrowLedger, Depends(get_ledger)],
    request: Request,
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> ApiResponse:
    expected = settings.PAYMENT_WEBHOOK_SECRET
    # An unset secret disables the webhook entirely
    if not expected or not secrets.compare_digest(
        (x_webhook_secret or "").encode(), expected.encode()
    ):
        raise InvalidWebhookSecretError()

    escrow = await ledger.handle_payment_success(db, body.escrow_id, body.payment_reference)
    return success_response(
        {
            "escrow_id": escrow.id,
            "order_id": escrow.order_id,
            "status": escrow.status,
            "payment_status": escrow.payment_status,
        },
        request_id_of(request),
    )
