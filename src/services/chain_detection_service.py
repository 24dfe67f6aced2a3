"""
Chain Detection Service - deed buyer → still-owned property leads.

One pipeline, three entry modes:
- ByListingId: a stored sold listing
- ByAddress: a caller-supplied address
- BatchScan: recently seen sold listings without chains yet

Per property: resolve buyer from deed records → search other properties owned
by that name → score each pairing → keep confidence >= MIN_CONFIDENCE_SCORE.
Listings and candidates are processed strictly one at a time; this is the only
bound on BatchData request rate, so don't parallelize without an equivalent cap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger

from config.chain_detection import (
    BATCH_PROCESS_CAP,
    MIN_CONFIDENCE_SCORE,
    RECENT_SALE_DAYS,
)
from src.models.ownership import (
    BatchScan,
    BuyerInfo,
    ByAddress,
    ByListingId,
    ChainMatch,
    DetectionMode,
    PropertyOwnership,
    SoldListingRef,
)
from src.services.batchdata_client import BatchDataClient
from src.services.confidence_scorer import calculate_confidence
from src.services.errors import DataIncomplete, NotFoundError, UpstreamUnavailable
from src.services.pg_chain_service import PgChainService
from src.services.pg_listing_service import PgListingService
from src.utils.time import is_within_days, now_utc

NO_BUYER_MESSAGE = "Could not determine buyer name from deed records"


@dataclass
class DetectionResult:
    success: bool
    chains: list[ChainMatch] = field(default_factory=list)
    message: str = ""
    persisted: dict[str, int] | None = None

    def to_response(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "chainsDetected": len(self.chains),
            "chains": [chain.to_response() for chain in self.chains],
            "message": self.message,
        }


def score_candidates(
    sold: SoldListingRef,
    buyer: BuyerInfo,
    owned_properties: list[PropertyOwnership],
    now: datetime,
) -> list[ChainMatch]:
    """Score every owned property against the sold one; keep qualifying pairs."""
    sold_state = (sold.state or "").lower()
    recent_sale = is_within_days(buyer.sale_date, RECENT_SALE_DAYS, now)

    matches: list[ChainMatch] = []
    for owned in owned_properties:
        # Raw string comparison; formatting differences count as a mismatch
        mailing_mismatch = owned.mailing_address != owned.property_address
        same_state = bool(sold_state) and owned.state.lower() == sold_state

        score, signals = calculate_confidence(
            buyer.buyer_name or "",
            owned.owner_name,
            mailing_mismatch,
            same_state,
            recent_sale,
        )
        if score < MIN_CONFIDENCE_SCORE:
            logger.debug(f"Rejected {owned.address} for {buyer.buyer_name}: score {score} {signals}")
            continue

        matches.append(
            ChainMatch(
                sold_listing_id=sold.listing_id or None,
                sold_address=sold.street or "",
                sold_city=sold.city or "",
                sold_state=sold.state or "",
                sold_zip=sold.zip or "",
                sale_date=buyer.sale_date,
                sale_price=buyer.sale_price,
                buyer_name=buyer.buyer_name or "",
                owned_property_address=owned.address,
                owned_property_city=owned.city,
                owned_property_state=owned.state,
                owned_property_zip=owned.zip,
                confidence_score=score,
                match_signals=signals,
            )
        )
    return matches


class ChainDetectionService:
    """Coordinates buyer resolution, owned-property search, scoring and persistence."""

    def __init__(
        self,
        client: BatchDataClient,
        listings: PgListingService,
        chains: PgChainService,
        persist: bool = True,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.client = client
        self.listings = listings
        self.chains = chains
        self.persist = persist
        self.clock = clock

    def detect(self, mode: DetectionMode) -> DetectionResult:
        if isinstance(mode, ByListingId):
            return self._detect_listing(mode.listing_id)
        if isinstance(mode, ByAddress):
            sold = SoldListingRef(
                listing_id="",
                street=mode.street,
                city=mode.city,
                state=mode.state,
                zip=mode.zip,
            )
            logger.info(f"Detecting chain for address: {mode.street}, {mode.city}, {mode.state} {mode.zip}")
            return self._detect_single(sold)
        if isinstance(mode, BatchScan):
            return self._batch_scan(mode.limit)
        raise TypeError(f"Unknown detection mode: {mode!r}")

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _detect_listing(self, listing_id: str) -> DetectionResult:
        logger.info(f"Detecting chain for listing: {listing_id}")
        sold = self.listings.get_listing(listing_id)
        if sold is None:
            raise NotFoundError("Listing not found", detail=f"No listing with id {listing_id}")
        return self._detect_single(sold)

    def _detect_single(self, sold: SoldListingRef) -> DetectionResult:
        try:
            matches = self._detect_for_property(sold, self.clock())
        except (DataIncomplete, UpstreamUnavailable) as e:
            logger.warning(f"No chains for {sold.street}: {e.message}")
            return DetectionResult(success=False, message=e.message)
        return self._finish(matches)

    def _batch_scan(self, limit: int) -> DetectionResult:
        """
        Scan recent sold listings that have no stored chain yet.

        "Processed" means at least one ownership_chains row carries the
        listing id. A listing that yielded no qualifying chain, or whose
        chains all collided with existing address pairs, leaves no row and is
        looked up again (two BatchData calls) on every scan until it ages out
        of the ``limit`` window.
        """
        logger.info(f"Batch scanning recent sold listings (limit={limit})")
        sold_listings = self.listings.recent_sold_listings(limit)
        processed = self.chains.processed_listing_ids([s.listing_id for s in sold_listings])
        unprocessed = [s for s in sold_listings if s.listing_id not in processed]

        batch = unprocessed[:BATCH_PROCESS_CAP]
        logger.info(
            f"Processing {len(batch)} of {len(unprocessed)} unprocessed sold listings "
            f"({len(processed)} already have chains)"
        )

        now = self.clock()
        matches: list[ChainMatch] = []
        for sold in batch:
            if not (sold.street and sold.city and sold.state):
                logger.debug(f"Skipping listing {sold.listing_id}: incomplete address")
                continue
            try:
                found = self._detect_for_property(sold, now)
            except (DataIncomplete, UpstreamUnavailable) as e:
                logger.warning(f"Skipping listing {sold.listing_id}: {e.message}")
                continue
            logger.info(f"Listing {sold.listing_id}: {len(found)} qualifying chains")
            matches.extend(found)

        return self._finish(matches)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _resolve_buyer(self, sold: SoldListingRef) -> BuyerInfo:
        if not sold.street:
            raise DataIncomplete("Sold property has no street address")
        buyer = self.client.get_buyer_info(sold.street, sold.city or "", sold.state or "", sold.zip or "")
        if buyer is None:
            raise UpstreamUnavailable(NO_BUYER_MESSAGE, detail="Property details lookup failed")
        if not buyer.buyer_name:
            raise DataIncomplete(NO_BUYER_MESSAGE)
        return buyer

    def _detect_for_property(self, sold: SoldListingRef, now: datetime) -> list[ChainMatch]:
        buyer = self._resolve_buyer(sold)
        owned = self.client.search_owned_properties(buyer.buyer_name, exclude_address=sold.street)
        logger.info(f"Found {len(owned)} owned properties for {buyer.buyer_name}")
        return score_candidates(sold, buyer, owned, now)

    def _finish(self, matches: list[ChainMatch]) -> DetectionResult:
        matches.sort(key=lambda m: m.confidence_score, reverse=True)

        persisted = None
        if matches and self.persist:
            logger.info(f"Saving {len(matches)} detected chains")
            persisted = self.chains.save_chains(matches)

        message = f"Found {len(matches)} potential chain lead(s)" if matches else "No chains detected"
        return DetectionResult(success=True, chains=matches, message=message, persisted=persisted)
