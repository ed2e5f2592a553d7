"""Tests for request validation, response mapping and cursor utilities."""

import pytest
from pydantic import ValidationError

from src.rp_account.application.schemas import (
    AccountResponse,
    EarnRequest,
    OpenAccountRequest,
    RatingRequest,
    cursor_decode,
    cursor_encode,
)
from src.rp_account.domain.models import Account
from src.rp_listing.application.schemas import PostListingRequest, kg_to_display
from src.rp_market.application.schemas import BuyRequest, CreateB2BListingRequest
from src.rp_trade.application.schemas import BroadcastOfferRequest


class TestAccountSchemas:
    def test_open_account_defaults_to_individual(self) -> None:
        req = OpenAccountRequest(display_name="Sam", region="Austin, TX")
        assert req.role == "INDIVIDUAL"

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            OpenAccountRequest(role="ADMIN", display_name="Sam", region="Austin, TX")

    @pytest.mark.parametrize("amount", [0, -10])
    def test_earn_amount_positive(self, amount: int) -> None:
        with pytest.raises(ValidationError):
            EarnRequest(amount=amount, description="Compost")

    @pytest.mark.parametrize("score", [0, 6])
    def test_rating_range(self, score: int) -> None:
        with pytest.raises(ValidationError):
            RatingRequest(account_id="giver", score=score)

    def test_account_response_display(self) -> None:
        account = Account(
            id="acme", role="ENTERPRISE", display_name="Acme", region="Austin, TX",
            balance=12500, rating=4.333333, rating_count=3,
        )
        resp = AccountResponse.from_domain(account)
        assert resp.balance_display == "12,500 cr"
        assert resp.rating == 4.33


class TestCursorUtils:
    def test_encode_decode_roundtrip(self) -> None:
        assert cursor_decode(cursor_encode(12345)) == 12345

    def test_none_passes_through(self) -> None:
        assert cursor_decode(None) is None

    def test_decode_invalid_returns_none(self) -> None:
        assert cursor_decode("not-valid-base64!!!") is None


class TestListingSchemas:
    def test_post_request_to_details(self) -> None:
        req = PostListingRequest(title="Soup", quantity=2, location="Austin, TX", tags=["Free"])
        details = req.to_details()
        assert details.quantity == 2
        assert details.distance == "1km"
        assert details.tags == ["Free"]
        assert req.declared_baseline_kg is None

    def test_zero_quantity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PostListingRequest(title="Soup", quantity=0, location="Austin, TX")

    def test_negative_baseline_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PostListingRequest(title="Soup", quantity=1, location="Austin", declared_baseline_kg=-1)

    def test_kg_display(self) -> None:
        assert kg_to_display(2.4) == "2.40 kg CO2e"
        assert kg_to_display(1234.5) == "1,234.50 kg CO2e"


class TestTradeAndMarketSchemas:
    def test_offer_price_positive(self) -> None:
        with pytest.raises(ValidationError):
            BroadcastOfferRequest(region="Austin, TX", price=0)

    def test_old_vintage_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateB2BListingRequest(amount=10, price_per_unit=1, vintage=1980, project="Forest")

    def test_buy_defaults_to_not_retired(self) -> None:
        assert BuyRequest(amount=5).retire is False
