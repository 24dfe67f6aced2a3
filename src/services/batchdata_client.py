"""
Deed and owned-property lookups via the BatchData API.

Requires environment variable:
    BATCH_DATA_API_KEY: bearer token for api.batchdata.com

Usage:
    from src.services.batchdata_client import BatchDataClient
    client = BatchDataClient()
    buyer = client.get_buyer_info("123 Main St", "Tampa", "FL", "33602")
    if buyer and buyer.buyer_name:
        owned = client.search_owned_properties(buyer.buyer_name, exclude_address="123 Main St")

Both lookups are single-shot. A failed call is logged and reported as "no data"
(``None`` / ``[]``).
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from config.chain_detection import (
    BATCH_DATA_PERSON_SEARCH_URL,
    BATCH_DATA_PROPERTY_URL,
    REQUEST_TIMEOUT_SECONDS,
)
from src.models.ownership import BuyerInfo, PropertyOwnership
from src.services.errors import ConfigurationError, UpstreamUnavailable


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a key is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class BatchDataClient:
    PROPERTY_URL = BATCH_DATA_PROPERTY_URL
    PERSON_SEARCH_URL = BATCH_DATA_PERSON_SEARCH_URL

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key or os.environ.get("BATCH_DATA_API_KEY")
        if not self.api_key:
            raise ConfigurationError("BATCH_DATA_API_KEY not configured")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post(self, url: str, payload: Dict[str, Any], context: str) -> Dict[str, Any]:
        """POST JSON and return the decoded body, raising UpstreamUnavailable on any failure."""
        try:
            resp = self.session.post(url, headers=self._headers(), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"{context}: request failed", detail=str(e)) from e

        if not resp.ok:
            raise UpstreamUnavailable(f"{context}: HTTP {resp.status_code}", detail=resp.text[:500])

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"{context}: invalid JSON", detail=str(e)) from e
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Deed / buyer resolution
    # ------------------------------------------------------------------

    def get_buyer_info(self, street: str, city: str, state: str, zip_code: str) -> Optional[BuyerInfo]:
        """
        Look up the most recent transaction for an address.

        Returns:
            BuyerInfo (buyer_name may be None when the record has no buyer),
            or None when the API call failed.
        """
        address = f"{street}, {city}, {state} {zip_code}".strip()
        logger.info(f"Getting buyer info for: {address}")

        payload = {
            "requests": [
                {"propertyAddress": {"street": street, "city": city, "state": state, "zip": zip_code}}
            ]
        }
        try:
            data = self._post(self.PROPERTY_URL, payload, f"Property details [{address}]")
        except UpstreamUnavailable as e:
            logger.error(f"{e.message} {e.detail or ''}".strip())
            return None

        info = self.parse_buyer_info(data)
        logger.debug(
            f"Extracted buyer info for {address}: buyer={info.buyer_name} "
            f"sale_date={info.sale_date} sale_price={info.sale_price}"
        )
        return info

    @staticmethod
    def parse_buyer_info(data: Dict[str, Any]) -> BuyerInfo:
        prop = _dig(data, "results", "property") or data.get("property")
        if not isinstance(prop, dict):
            prop = {}
        transactions = prop.get("transactions") or prop.get("saleHistory") or []
        last_tx = _first(transactions)
        if not isinstance(last_tx, dict):
            last_tx = {}

        buyer_name = (
            _first(last_tx.get("buyerNames"))
            or _dig(last_tx, "buyer", "name")
            or _dig(_first(_dig(prop, "owner", "names")), "full")
            or _dig(prop, "owner", "fullName")
        )
        mailing = _dig(prop, "owner", "mailingAddress", "full") or _dig(prop, "mailingAddress", "full")
        sale_date = last_tx.get("saleDate") or last_tx.get("recordingDate") or prop.get("lastSaleDate")
        sale_price = last_tx.get("salePrice") or prop.get("lastSalePrice")

        return BuyerInfo(
            buyer_name=_to_text(buyer_name),
            buyer_mailing_address=_to_text(mailing),
            sale_date=_to_text(sale_date),
            sale_price=_to_float(sale_price),
        )

    # ------------------------------------------------------------------
    # Person -> properties search
    # ------------------------------------------------------------------

    def search_owned_properties(
        self, owner_name: str, exclude_address: Optional[str] = None
    ) -> List[PropertyOwnership]:
        """List properties associated with ``owner_name``, minus ``exclude_address``."""
        logger.info(f"Searching for properties owned by: {owner_name}")

        try:
            data = self._post(self.PERSON_SEARCH_URL, {"name": owner_name}, f"Person search [{owner_name}]")
        except UpstreamUnavailable as e:
            logger.error(f"{e.message} {e.detail or ''}".strip())
            return []

        properties = self.parse_owned_properties(data, owner_name, exclude_address)
        logger.info(f"Person search for {owner_name}: {len(properties)} candidate properties")
        return properties

    @staticmethod
    def parse_owned_properties(
        data: Dict[str, Any], owner_name: str, exclude_address: Optional[str] = None
    ) -> List[PropertyOwnership]:
        raw_properties = _dig(data, "results", "properties") or data.get("properties") or []
        excluded = exclude_address.lower() if exclude_address else None

        properties: List[PropertyOwnership] = []
        for prop in raw_properties:
            if not isinstance(prop, dict):
                continue
            addr = prop.get("address") or {}
            if isinstance(addr, str):
                addr = {"full": addr}
            elif not isinstance(addr, dict):
                addr = {}
            full_address = _to_text(addr.get("full")) or " ".join(
                str(addr[k]) for k in ("street", "city", "state", "zip") if addr.get(k)
            )

            # Skip the property they just bought
            if excluded and excluded in full_address.lower():
                continue

            properties.append(
                PropertyOwnership(
                    address=_to_text(addr.get("street")) or full_address,
                    city=_to_text(addr.get("city")) or "",
                    state=_to_text(addr.get("state")) or "",
                    zip=_to_text(addr.get("zip")) or "",
                    owner_name=_to_text(_dig(prop, "owner", "name")) or _to_text(prop.get("ownerName")) or owner_name,
                    mailing_address=_to_text(_dig(prop, "mailingAddress", "full")),
                    property_address=_to_text(addr.get("full")),
                    last_sale_date=_to_text(prop.get("lastSaleDate")),
                )
            )
        return properties
