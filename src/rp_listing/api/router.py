"""rp_listing REST API: surplus food listings, claims and chat threads."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_common.database import get_db_session
from src.rp_common.enums import TransportMode
from src.rp_common.response import ApiResponse, success_response
from src.rp_gateway.auth.dependencies import get_current_session
from src.rp_gateway.auth.session import Session
from src.rp_gateway.middleware.rate_limit import limit_claim_code_attempts
from src.rp_gateway.middleware.request_log import get_request_id
from src.rp_listing.application.schemas import (
    ClaimRequest,
    CompleteRequest,
    PostListingRequest,
    SendMessageRequest,
)
from src.rp_listing.application.service import ListingLedger

router = APIRouter(tags=["listings"])

_service = ListingLedger()


@router.post("/listings", status_code=status.HTTP_201_CREATED)
async def post_listing(
    body: PostListingRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.post(
        db, session, body.to_details(), body.declared_baseline_kg, body.chosen_action_kg
    )
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings")
async def browse_listings(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    location: str | None = Query(None, max_length=255, description="Substring of location"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.browse(db, session, location, limit)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/mine")
async def my_listings(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.my_active(db, session)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/claims")
async def my_claims(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.my_claims(db, session)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/history")
async def listing_history(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    role: str = Query("giver", pattern="^(giver|receiver)$"),
) -> ApiResponse:
    if role == "receiver":
        data = await _service.receiver_history(db, session)
    else:
        data = await _service.giver_history(db, session)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/listings/complete")
async def complete_pickup(
    body: CompleteRequest,
    session: Annotated[Session, Depends(limit_claim_code_attempts)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.complete(db, session, body.code)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/{listing_id}")
async def get_listing(
    listing_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_listing(db, session, listing_id)
    return success_response(data.model_dump(), get_request_id(request))


@router.delete("/listings/{listing_id}")
async def delete_listing(
    listing_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete(db, session, listing_id)
    return success_response({"listing_id": listing_id, "deleted": True}, get_request_id(request))


@router.post("/listings/{listing_id}/claim")
async def claim_listing(
    listing_id: str,
    body: ClaimRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.claim(db, session, listing_id, body.pickup_method)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/{listing_id}/messages")
async def read_thread(
    listing_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_thread(db, session, listing_id)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/listings/{listing_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    listing_id: str,
    body: SendMessageRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.send_message(db, session, listing_id, body.text)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/listings/{listing_id}/pickup-analysis")
async def pickup_analysis(
    listing_id: str,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    distance_km: float | None = Query(None, ge=0, description="Overrides declared distance"),
    mode: TransportMode | None = Query(None, description="walk, bike, transit or car"),
) -> ApiResponse:
    data = await _service.pickup_analysis(db, listing_id, distance_km, mode)
    return success_response(data.model_dump(), get_request_id(request))
