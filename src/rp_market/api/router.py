"""rp_market REST API: B2B credit batches."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.database import get_db_session
from src.rp_common.response import ApiResponse, success_response
from src.rp_gateway.auth.dependencies import get_current_session
from src.rp_gateway.auth.session import Session
from src.rp_gateway.middleware.request_log import get_request_id
from src.rp_market.application.schemas import BuyRequest, CreateB2BListingRequest
from src.rp_market.application.service import B2BMarket

router = APIRouter(prefix="/b2b", tags=["b2b"])

_service = B2BMarket()


@router.post("/listings", status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: CreateB2BListingRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_credits(
        db, session, body.amount, body.price_per_unit, body.vintage, body.project
    )
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings")
async def list_active(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.active_listings(db)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/listings/{listing_id}/buy")
async def buy_credits(
    listing_id: str,
    body: BuyRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.buy(db, session, listing_id, body.amount, body.retire)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/holdings")
async def holdings(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.holdings(db, session)
    return success_response(data.model_dump(), get_request_id(request))
