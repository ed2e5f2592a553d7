"""rp_account REST API: account provisioning, points and ratings."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.rp_account.application.schemas import (
    EarnRequest,
    OpenAccountRequest,
    PersonalActionRequest,
    RatingRequest,
    RedeemRequest,
)
from src.rp_account.application.service import AccountApplicationService
from src.rp_common.database import get_db_session
from src.rp_common.enums import PointsEntryKind
from src.rp_common.response import ApiResponse, success_response
from src.rp_gateway.auth.dependencies import get_current_session, get_token_subject
from src.rp_gateway.auth.session import Session
from src.rp_gateway.middleware.request_log import get_request_id

router = APIRouter(tags=["account"])

_service = AccountApplicationService()


@router.post("/account", status_code=status.HTTP_201_CREATED)
async def open_account(
    body: OpenAccountRequest,
    account_id: Annotated[str, Depends(get_token_subject)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open_account(
        db, account_id, body.role, body.display_name, body.region
    )
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/account")
async def get_account(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_account(db, session.account_id)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/account/balance")
async def get_balance(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, session)
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/account/ledger")
async def list_ledger(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    kind: PointsEntryKind | None = Query(None, description="EARNED or REDEEMED"),
) -> ApiResponse:
    data = await _service.list_ledger(
        db, session, cursor, limit, kind.value if kind else None
    )
    return success_response(data.model_dump(), get_request_id(request))


@router.get("/account/ledger/verify")
async def verify_ledger(
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    violations = await _service.verify_ledger(db, session)
    return success_response(
        {"consistent": not violations, "violations": violations}, get_request_id(request)
    )


@router.post("/points/earn")
async def earn_points(
    body: EarnRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.earn(db, session, body.amount, body.description)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/points/redeem")
async def redeem_points(
    body: RedeemRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.redeem(db, session, body.amount, body.description)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/account/ratings")
async def submit_rating(
    body: RatingRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.submit_rating(db, session, body.account_id, body.score)
    return success_response(data.model_dump(), get_request_id(request))


@router.post("/points/actions")
async def record_personal_action(
    body: PersonalActionRequest,
    session: Annotated[Session, Depends(get_current_session)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_personal_action(db, session, body.action)
    return success_response(data.model_dump(), get_request_id(request))
