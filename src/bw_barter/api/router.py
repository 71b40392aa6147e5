"""bw_barter REST API — 4 endpoints, all require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bw_barter.application.schemas import DisputeRequest, VerifyPickupRequest
from src.bw_barter.application.service import TradeCommitmentMachine
from src.bw_common.database import get_db_session
from src.bw_common.response import ApiResponse, request_id_of, success_response
from src.bw_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/barter", tags=["barter"])

_machine = TradeCommitmentMachine()


def get_machine() -> TradeCommitmentMachine:
    return _machine


@router.get("/offers/{offer_id}")
async def get_offer(
    offer_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    machine: Annotated[TradeCommitmentMachine, Depends(get_machine)],
    request: Request,
) -> ApiResponse:
    data = await machine.get_offer(db, offer_id, user_id)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/offers/{offer_id}/lock")
async def lock_deal(
    offer_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    machine: Annotated[TradeCommitmentMachine, Depends(get_machine)],
    request: Request,
) -> ApiResponse:
    data = await machine.lock_deal(db, offer_id, user_id)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/offers/{offer_id}/verify-pickup")
async def verify_pickup(
    offer_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    machine: Annotated[TradeCommitmentMachine, Depends(get_machine)],
    request: Request,
    body: VerifyPickupRequest | None = None,
) -> ApiResponse:
    pin = body.pin if body is not None else None
    data = await machine.verify_pickup(db, offer_id, user_id, pin)
    return success_response(data.model_dump(mode="json"), request_id_of(request))


@router.post("/offers/{offer_id}/dispute")
async def raise_dispute(
    offer_id: str,
    body: DisputeRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    machine: Annotated[TradeCommitmentMachine, Depends(get_machine)],
    request: Request,
) -> ApiResponse:
    data = await machine.raise_dispute(db, offer_id, user_id, body.reason)
    return success_response(data.model_dump(mode="json"), request_id_of(request))
