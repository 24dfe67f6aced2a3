from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from app.web import dependencies
from app.web.main import app
from src.db.pg import create_schema
from src.models.ownership import BuyerInfo, PropertyOwnership, SoldListingRef
from src.services.chain_detection_service import ChainDetectionService
from src.services.errors import DatabaseUnavailableError
from src.services.pg_chain_service import PgChainService

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


class _FakeClient:
    def __init__(self, buyer: BuyerInfo | None, owned: list[PropertyOwnership]) -> None:
        self.buyer = buyer
        self.owned = owned

    def get_buyer_info(self, street: str, city: str, state: str, zip_code: str) -> BuyerInfo | None:
        return self.buyer

    def search_owned_properties(self, owner_name: str, exclude_address: str | None = None) -> list[PropertyOwnership]:
        return self.owned


class _FakeListings:
    def __init__(self, listings: dict[str, SoldListingRef]) -> None:
        self.listings = listings

    def get_listing(self, listing_id: str) -> SoldListingRef | None:
        return self.listings.get(listing_id)

    def recent_sold_listings(self, limit: int) -> list[SoldListingRef]:
        return list(self.listings.values())[:limit]


OWNED = [
    PropertyOwnership(
        address="12 Oak St", city="Orlando", state="FL", zip="32801", owner_name="Jane Doe",
        mailing_address="9 Other Rd", property_address="12 Oak St, Orlando, FL 32801",
    ),
]


@pytest.fixture
def engine(tmp_path: Path) -> Engine:
    eng = create_engine(f"sqlite:///{tmp_path / 'api.db'}")
    create_schema(eng)
    return eng


@pytest.fixture
def client(engine: Engine) -> Iterator[TestClient]:
    listings = {
        "L-1": SoldListingRef(listing_id="L-1", street="123 Main St", city="Tampa", state="FL", zip="33602"),
    }

    def _detection_service() -> ChainDetectionService:
        return ChainDetectionService(
            client=_FakeClient(BuyerInfo(buyer_name="Jane Doe", sale_date="2026-10-10"), OWNED),  # type: ignore[arg-type]
            listings=_FakeListings(listings),  # type: ignore[arg-type]
            chains=PgChainService(engine=engine),
            clock=lambda: NOW,
        )

    app.dependency_overrides[dependencies.get_db_engine] = lambda: engine
    app.dependency_overrides[dependencies.get_detection_service] = _detection_service
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def test_detect_by_address_returns_and_persists_chains(client: TestClient) -> None:
    resp = client.post(
        "/detect-ownership-chain",
        json={"street": "123 Main St", "city": "Tampa", "state": "FL", "zip": "33602"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["chainsDetected"] == 1
    assert body["message"] == "Found 1 potential chain lead(s)"
    chain = body["chains"][0]
    assert chain["ownedPropertyAddress"] == "12 Oak St"
    assert chain["confidenceScore"] == 75
    assert chain["matchSignals"] == {
        "exactNameMatch": True,
        "mailingMismatch": True,
        "sameState": True,
        "recentSale": True,
    }

    listed = client.get("/chains").json()
    assert listed["count"] == 1
    assert listed["chains"][0]["confidence_label"] == "Medium"
    assert listed["chains"][0]["signal_descriptions"] == [
        "Exact name match",
        "Different mailing address",
        "Same state",
        "Recent sale",
    ]


def test_repeated_detection_stores_one_row(client: TestClient) -> None:
    body = {"soldListingId": "L-1"}
    assert client.post("/detect-ownership-chain", json=body).status_code == 200
    assert client.post("/detect-ownership-chain", json=body).status_code == 200

    listed = client.get("/chains").json()
    assert listed["count"] == 1
    assert listed["chains"][0]["sold_listing_id"] == "L-1"


def test_unknown_listing_is_404(client: TestClient) -> None:
    resp = client.post("/detect-ownership-chain", json={"soldListingId": "nope"})

    assert resp.status_code == 404
    assert resp.json()["error"] == "Listing not found"


@pytest.mark.parametrize("content", [b"", b"{not json", b"[1, 2]"])
def test_malformed_body_is_400(client: TestClient, content: bytes) -> None:
    resp = client.post(
        "/detect-ownership-chain",
        content=content,
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert "error" in resp.json()


def test_partial_address_is_400(client: TestClient) -> None:
    resp = client.post("/detect-ownership-chain", json={"street": "123 Main St", "city": "Tampa"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Incomplete address: missing state, zip"


def test_batch_scan_via_empty_object(client: TestClient) -> None:
    resp = client.post("/detect-ownership-chain", json={})

    assert resp.status_code == 200
    body = resp.json()
    assert body["chainsDetected"] == 1
    assert body["chains"][0]["soldAddress"] == "123 Main St"


def test_cors_preflight(client: TestClient) -> None:
    resp = client.options(
        "/detect-ownership-chain",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


def test_unexpected_error_is_500(client: TestClient, monkeypatch: Any) -> None:
    def _boom(self: ChainDetectionService, mode: Any) -> Any:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(ChainDetectionService, "detect", _boom)

    resp = client.post("/detect-ownership-chain", json={}, headers={"Origin": "https://app.example.com"})

    assert resp.status_code == 500
    assert resp.headers["access-control-allow-origin"] == "*"
    body = resp.json()
    assert body["error"] == "Internal server error"
    assert "kaboom" in body["detail"]


def test_database_read_failure_is_500(engine: Engine) -> None:
    class _DownListings(_FakeListings):
        def recent_sold_listings(self, limit: int) -> list[SoldListingRef]:
            raise DatabaseUnavailableError("Failed to load sold listings", detail="connection refused")

    app.dependency_overrides[dependencies.get_detection_service] = lambda: ChainDetectionService(
        client=_FakeClient(None, []),  # type: ignore[arg-type]
        listings=_DownListings({}),  # type: ignore[arg-type]
        chains=PgChainService(engine=engine),
        clock=lambda: NOW,
    )
    try:
        resp = TestClient(app, raise_server_exceptions=False).post(
            "/detect-ownership-chain", json={}, headers={"Origin": "https://app.example.com"}
        )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.json() == {"error": "Failed to load sold listings", "detail": "connection refused"}


def test_missing_api_key_is_500(engine: Engine, monkeypatch: Any) -> None:
    monkeypatch.delenv("BATCH_DATA_API_KEY", raising=False)
    app.dependency_overrides[dependencies.get_db_engine] = lambda: engine
    try:
        resp = TestClient(app, raise_server_exceptions=False).post("/detect-ownership-chain", json={})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json()["error"] == "BATCH_DATA_API_KEY not configured"


def test_chain_status_endpoints(client: TestClient) -> None:
    client.post("/detect-ownership-chain", json={"soldListingId": "L-1"})
    chain_id = client.get("/chains").json()["chains"][0]["id"]

    resp = client.patch(f"/chains/{chain_id}/status", json={"status": "contacted"})
    assert resp.status_code == 200
    assert resp.json()["chain_status"] == "contacted"

    assert client.get(f"/chains/{chain_id}").json()["chain_status"] == "contacted"
    assert client.get("/chains").json()["count"] == 0
    assert client.get("/chains", params={"status": "contacted"}).json()["count"] == 1

    assert client.patch(f"/chains/{chain_id}/status", json={"status": "archived"}).status_code == 400
    assert client.patch(f"/chains/{chain_id}/status", json={}).status_code == 400
    assert client.patch("/chains/missing/status", json={"status": "sold"}).status_code == 404
    assert client.get("/chains/missing").status_code == 404


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
