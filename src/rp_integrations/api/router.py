"""Estimation and address lookup endpoints.

Thin pass-throughs to the external adapters; upstream outages show up as
empty results, never as errors.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.rp_common.response import ApiResponse, success_response
from src.rp_gateway.auth.dependencies import get_current_session
from src.rp_gateway.auth.session import Session
from src.rp_gateway.middleware.request_log import get_request_id
from src.rp_integrations.address_lookup import AddressLookup, get_address_lookup
from src.rp_integrations.estimation import EstimationClient, HttpEstimationClient
from src.rp_integrations.schemas import (
    AnalysisResponse,
    AnalyzeRequest,
    PostalResponse,
    PredictionResponse,
    PredictRequest,
)

router = APIRouter(tags=["integrations"])

_estimation = HttpEstimationClient()


def get_estimation_client() -> EstimationClient:
    return _estimation


@router.post("/carbon/analyze")
async def analyze_dish(
    body: AnalyzeRequest,
    session: Annotated[Session, Depends(get_current_session)],
    client: Annotated[EstimationClient, Depends(get_estimation_client)],
    request: Request,
) -> ApiResponse:
    analysis = await client.analyze(body.dish_name, body.quantity, body.locality)
    return success_response(
        AnalysisResponse.from_domain(analysis).model_dump(), get_request_id(request)
    )


@router.post("/carbon/predict")
async def predict_dish(
    body: PredictRequest,
    session: Annotated[Session, Depends(get_current_session)],
    client: Annotated[EstimationClient, Depends(get_estimation_client)],
    request: Request,
) -> ApiResponse:
    prediction = await client.predict(body.dish_name)
    return success_response(
        PredictionResponse.from_domain(prediction).model_dump(), get_request_id(request)
    )


@router.get("/lookup/address")
async def search_address(
    lookup: Annotated[AddressLookup, Depends(get_address_lookup)],
    request: Request,
    q: str = Query(..., max_length=255, description="Free-text address fragment"),
) -> ApiResponse:
    results = await lookup.search_address(q)
    return success_response({"query": q, "results": results}, get_request_id(request))


@router.get("/lookup/postal/{code}")
async def lookup_postal(
    code: str,
    lookup: Annotated[AddressLookup, Depends(get_address_lookup)],
    request: Request,
) -> ApiResponse:
    place = await lookup.lookup_postal(code)
    return success_response(
        PostalResponse.from_place(code, place).model_dump(), get_request_id(request)
    )
