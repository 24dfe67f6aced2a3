from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import JSON
from sqlalchemy import Date
from sqlalchemy import DateTime
from sqlalchemy import Index
from sqlalchemy import Integer
from sqlalchemy import Numeric
from sqlalchemy import String
from sqlalchemy import Text
from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Listing(Base):
    """Scraped listing row. Owned by the listings subsystem; read-only here."""

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    addressstreet: Mapped[str | None] = mapped_column(Text, nullable=True)
    addresscity: Mapped[str | None] = mapped_column(Text, nullable=True)
    lastcity: Mapped[str | None] = mapped_column(Text, nullable=True)
    addressstate: Mapped[str | None] = mapped_column(String(32), nullable=True)
    addresszipcode: Mapped[str | None] = mapped_column(String(16), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    lastseenat: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("idx_listings_status_lastseen", "status", "lastseenat"),)


class OwnershipChain(Base):
    __tablename__ = "ownership_chains"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    sold_listing_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sold_address: Mapped[str] = mapped_column(Text, nullable=False)
    sold_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    sold_state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sold_zip: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sale_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    sale_price: Mapped[float | None] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=True)
    buyer_name: Mapped[str] = mapped_column(Text, nullable=False)
    buyer_name_normalized: Mapped[str] = mapped_column(Text, nullable=False)
    owned_property_address: Mapped[str] = mapped_column(Text, nullable=False)
    owned_property_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    owned_property_state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    owned_property_zip: Mapped[str | None] = mapped_column(String(16), nullable=True)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False)
    match_signals: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )
    chain_status: Mapped[str] = mapped_column(String(16), nullable=False, default="detected")
    detected_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "sold_address",
            "owned_property_address",
            name="uq_ownership_chains_sold_owned",
        ),
        Index("idx_ownership_chains_sold_listing", "sold_listing_id"),
        Index("idx_ownership_chains_status_confidence", "chain_status", "confidence_score"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sold_listing_id": self.sold_listing_id,
            "sold_address": self.sold_address,
            "sold_city": self.sold_city,
            "sold_state": self.sold_state,
            "sold_zip": self.sold_zip,
            "sale_date": self.sale_date.isoformat() if self.sale_date else None,
            "sale_price": float(self.sale_price) if self.sale_price is not None else None,
            "buyer_name": self.buyer_name,
            "buyer_name_normalized": self.buyer_name_normalized,
            "owned_property_address": self.owned_property_address,
            "owned_property_city": self.owned_property_city,
            "owned_property_state": self.owned_property_state,
            "owned_property_zip": self.owned_property_zip,
            "confidence_score": self.confidence_score,
            "match_signals": self.match_signals or {},
            "chain_status": self.chain_status,
            "detected_at": self.detected_at.isoformat() if self.detected_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
