"""Tests for rp_common.errors and rp_common.response."""

from src.rp_common.errors import (
    AppError,
    CodeNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    RateLimitError,
    UnauthorizedError,
)
from src.rp_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestDomainErrors:
    def test_unauthorized(self) -> None:
        err = UnauthorizedError("only the owner may delete a listing")
        assert (err.code, err.http_status) == (1003, 403)
        assert "owner" in err.message

    def test_invalid_amount(self) -> None:
        err = InvalidAmountError("amount must be positive, got 0")
        assert (err.code, err.http_status) == (2001, 422)

    def test_insufficient_funds_mentions_both_amounts(self) -> None:
        err = InsufficientFundsError(required=600, available=500)
        assert (err.code, err.http_status) == (2002, 422)
        assert "600" in err.message
        assert "500" in err.message

    def test_invalid_state(self) -> None:
        err = InvalidStateError("listing", "L1", "CLAIMED", "claim")
        assert (err.code, err.http_status) == (3001, 409)
        assert err.message == "Cannot claim listing L1 in status CLAIMED"
        assert err.status == "CLAIMED"

    def test_code_not_found_is_uninformative(self) -> None:
        err = CodeNotFoundError()
        assert (err.code, err.http_status) == (3002, 404)
        assert "completed" not in err.message.lower()

    def test_rate_limit(self) -> None:
        assert RateLimitError().http_status == 429


class TestApiResponse:
    def test_success_defaults(self) -> None:
        resp = success_response({"a": 1})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"a": 1}
        assert resp.request_id.startswith("req_")

    def test_success_keeps_request_id(self) -> None:
        assert success_response(None, "req_abc").request_id == "req_abc"

    def test_error_has_no_data(self) -> None:
        resp = error_response(3002, "Invalid code", "req_xyz")
        assert isinstance(resp, ApiResponse)
        assert resp.code == 3002
        assert resp.data is None
        assert resp.request_id == "req_xyz"
