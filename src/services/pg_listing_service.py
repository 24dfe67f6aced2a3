"""
Listing reads for chain detection.

The ``listings`` table belongs to the scraper subsystem; this service only
reads it. Addresses come from scraped columns with fallbacks:
street ``addressstreet`` → ``address``, city ``addresscity`` → ``lastcity``.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.chain_detection import LISTING_STATUS_SOLD
from src.db.models import Listing
from src.db.pg import get_engine, resolve_pg_dsn
from src.models.ownership import SoldListingRef
from src.services.errors import DatabaseUnavailableError


def _to_ref(listing: Listing) -> SoldListingRef:
    return SoldListingRef(
        listing_id=str(listing.id),
        street=listing.addressstreet or listing.address,
        city=listing.addresscity or listing.lastcity,
        state=listing.addressstate,
        zip=listing.addresszipcode,
    )


class PgListingService:
    """Read-only access to sold listings."""

    def __init__(self, engine: Engine | None = None, dsn: str | None = None):
        self._engine = engine or get_engine(resolve_pg_dsn(dsn))

    def get_listing(self, listing_id: str) -> SoldListingRef | None:
        try:
            with Session(self._engine) as session:
                listing = session.get(Listing, listing_id)
                return _to_ref(listing) if listing else None
        except SQLAlchemyError as e:
            logger.error(f"get_listing({listing_id}) failed: {e}")
            raise DatabaseUnavailableError("Failed to load listing", detail=str(e)) from e

    def recent_sold_listings(self, limit: int) -> list[SoldListingRef]:
        """Most recently seen sold listings, newest first."""
        stmt = (
            select(Listing)
            .where(Listing.status == LISTING_STATUS_SOLD)
            .order_by(Listing.lastseenat.desc().nulls_last())
            .limit(limit)
        )
        try:
            with Session(self._engine) as session:
                return [_to_ref(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            logger.error(f"recent_sold_listings(limit={limit}) failed: {e}")
            raise DatabaseUnavailableError("Failed to load sold listings", detail=str(e)) from e
