"""Unified API response envelope.

Every endpoint, success or failure, answers with:
{
    "code": 0,            // 0 on success, otherwise the AppError code
    "message": "success",
    "data": { ... },      // null on error
    "timestamp": "...",
    "request_id": "req_..."
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.rp_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    if request_id:
        return ApiResponse(data=data, request_id=request_id)
    return ApiResponse(data=data)


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    if request_id:
        return ApiResponse(code=code, message=message, request_id=request_id)
    return ApiResponse(code=code, message=message)
