from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.ownership import (
    BatchScan,
    ByAddress,
    ByListingId,
    ChainMatch,
    parse_detection_mode,
)
from src.services.errors import ClientInputError


def _chain(**overrides: object) -> ChainMatch:
    fields: dict[str, object] = {
        "sold_address": "123 Main St",
        "sold_city": "Tampa",
        "sold_state": "FL",
        "sold_zip": "33602",
        "buyer_name": "Jane A. Doe",
        "owned_property_address": "12 Oak St",
        "owned_property_city": "Orlando",
        "owned_property_state": "FL",
        "owned_property_zip": "32801",
        "confidence_score": 75,
        "match_signals": {"exactNameMatch": True},
    }
    fields.update(overrides)
    return ChainMatch(**fields)


def test_listing_id_takes_priority() -> None:
    mode = parse_detection_mode({"soldListingId": "L-1", "street": "1 A St", "city": "X", "state": "FL", "zip": "1"})
    assert mode == ByListingId("L-1")


def test_full_address_selects_address_mode() -> None:
    mode = parse_detection_mode({"street": "1 A St", "city": "Tampa", "state": "FL", "zip": 33602})
    assert mode == ByAddress("1 A St", "Tampa", "FL", "33602")


def test_empty_body_selects_batch_scan_with_default_limit() -> None:
    assert parse_detection_mode({}) == BatchScan(limit=10)
    assert parse_detection_mode({"limit": 25}) == BatchScan(limit=25)


def test_partial_address_is_rejected() -> None:
    with pytest.raises(ClientInputError, match="missing state, zip"):
        parse_detection_mode({"street": "1 A St", "city": "Tampa"})


@pytest.mark.parametrize("payload", [[], "batch", None, {"limit": 0}, {"limit": "lots"}, {"limit": 1000}])
def test_invalid_payloads_are_client_errors(payload: object) -> None:
    with pytest.raises(ClientInputError):
        parse_detection_mode(payload)


def test_normalized_buyer_name_is_always_derived() -> None:
    chain = _chain(buyer_name_normalized="hand edited")
    assert chain.buyer_name_normalized == "jane doe"

    from_aliases = ChainMatch.model_validate(
        {**_chain().to_response(), "buyerNameNormalized": "also hand edited"}
    )
    assert from_aliases.buyer_name_normalized == "jane doe"


def test_chain_below_minimum_confidence_cannot_be_built() -> None:
    with pytest.raises(ValidationError):
        _chain(confidence_score=59)


def test_chain_is_immutable() -> None:
    chain = _chain()
    with pytest.raises(ValidationError):
        chain.confidence_score = 90  # type: ignore[misc]
