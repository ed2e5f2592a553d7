"""rp_trade REST API: regional trade offers between enterprises and individuals."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.database import get_db_session
from src.rp_common.response import ApiResponse, success_response
from src.rp_gateway.auth.dependencies import get_current_session
from src.rp_gateway.auth.session import Session
from src.rp_gateway.middleware.request_log import get_request_id
from src.rp_trade.application.schemas import BroadcastOfferRequest, UpdatePriceRequest
from src.rp_trade.application.service import TradeOfferNegotiator

router = APIRouter(prefix="/offers", tags=["offers"])

_service = TradeOfferNegotiator()


@router.post("", status_code=status.HTTP_201_CREATED)
async def broadcast_offer(
    body: BroadcastOfferRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.broadcast(db, session, body.region, body.price)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("")
async def list_offers(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_offers(db, session)
    return success_response(data.model_dump(), get_request_id(request))


@router.patch("/{offer_id}")
async def update_offer_price(
    offer_id: str,
    body: UpdatePriceRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_price(db, session, offer_id, body.price)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/{offer_id}/accept")
async def accept_offer(
    offer_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.accept(db, session, offer_id)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/{offer_id}/reject")
async def reject_offer(
    offer_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.reject(db, session, offer_id)
    return success_response(data.model_dump(), get_request_id(request))
