"""Tests for rp_common.enums: values are stored verbatim in the database."""

from src.rp_common.enums import (
    AccountRole,
    B2BListingStatus,
    ListingStatus,
    TradeOfferStatus,
    TransportMode,
)


def test_listing_status_values() -> None:
    assert [s.value for s in ListingStatus] == ["AVAILABLE", "CLAIMED", "COMPLETED"]


def test_trade_offer_status_values() -> None:
    assert {s.value for s in TradeOfferStatus} == {"PENDING", "ACCEPTED", "REJECTED"}


def test_b2b_status_values() -> None:
    assert {s.value for s in B2BListingStatus} == {"ACTIVE", "EXHAUSTED"}


def test_transport_modes_are_lowercase() -> None:
    assert [m.value for m in TransportMode] == ["walk", "bike", "transit", "car"]


def test_str_enum_compares_to_raw_value() -> None:
    assert AccountRole.ENTERPRISE == "ENTERPRISE"
    assert ListingStatus("CLAIMED") is ListingStatus.CLAIMED
