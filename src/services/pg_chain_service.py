"""
Ownership chain persistence and queries.

Writes are insert-if-absent on (sold_address, owned_property_address): a chain
that a human already moved to "contacted" is never reset to "detected". Each
chain is written in its own transaction so one bad row cannot roll back the
rest of a batch.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.chain_detection import (
    CHAIN_STATUS_DETECTED,
    CHAIN_STATUSES,
    DEFAULT_QUERY_LIMIT,
    MIN_CONFIDENCE_SCORE,
)
from src.db.models import OwnershipChain
from src.db.pg import get_engine, resolve_pg_dsn
from src.models.ownership import ChainMatch
from src.services.errors import ClientInputError, DatabaseUnavailableError, PersistenceError
from src.utils.time import now_utc, parse_date

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_CONFLICT_COLUMNS = ["sold_address", "owned_property_address"]


def chain_to_row(chain: ChainMatch) -> dict[str, Any]:
    """Map a ChainMatch onto ownership_chains columns."""
    return {
        "sold_listing_id": chain.sold_listing_id,
        "sold_address": chain.sold_address,
        "sold_city": chain.sold_city,
        "sold_state": chain.sold_state,
        "sold_zip": chain.sold_zip,
        "sale_date": parse_date(chain.sale_date),
        "sale_price": chain.sale_price,
        "buyer_name": chain.buyer_name,
        "buyer_name_normalized": chain.buyer_name_normalized,
        "owned_property_address": chain.owned_property_address,
        "owned_property_city": chain.owned_property_city,
        "owned_property_state": chain.owned_property_state,
        "owned_property_zip": chain.owned_property_zip,
        "confidence_score": chain.confidence_score,
        "match_signals": dict(chain.match_signals),
        "chain_status": CHAIN_STATUS_DETECTED,
    }


class PgChainService:
    """Read/write service for the ownership_chains table."""

    def __init__(self, engine: Engine | None = None, dsn: str | None = None):
        self._engine = engine or get_engine(resolve_pg_dsn(dsn))
        dialect = self._engine.dialect.name
        if dialect not in _INSERTS:
            raise PersistenceError(f"Unsupported database dialect for chain upserts: {dialect}")
        self._insert = _INSERTS[dialect]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_chain(self, chain: ChainMatch) -> bool:
        """Insert one chain unless its address pair already exists.

        Returns True when a row was inserted, False when it was a duplicate.
        """
        stmt = (
            self._insert(OwnershipChain)
            .values(**chain_to_row(chain))
            .on_conflict_do_nothing(index_elements=_CONFLICT_COLUMNS)
        )
        try:
            with self._engine.begin() as conn:
                inserted = conn.execute(stmt).rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save chain {chain.sold_address} -> {chain.owned_property_address}",
                detail=str(e),
            ) from e
        return inserted

    def save_chains(self, chains: Iterable[ChainMatch]) -> dict[str, int]:
        stats = {"inserted": 0, "duplicates": 0, "failed": 0}
        for chain in chains:
            try:
                inserted = self.save_chain(chain)
            except PersistenceError as e:
                logger.error(f"{e.message}: {e.detail}")
                stats["failed"] += 1
                continue
            stats["inserted" if inserted else "duplicates"] += 1

        logger.info(
            f"Saved chains: {stats['inserted']} inserted, "
            f"{stats['duplicates']} duplicates, {stats['failed']} failed"
        )
        return stats

    def update_chain_status(self, chain_id: str, status: str) -> dict[str, Any] | None:
        if status not in CHAIN_STATUSES:
            raise ClientInputError(
                f"Invalid chain status: {status}",
                detail=f"Expected one of: {', '.join(CHAIN_STATUSES)}",
            )
        try:
            with Session(self._engine) as session:
                chain = session.get(OwnershipChain, chain_id)
                if chain is None:
                    return None
                chain.chain_status = status
                chain.updated_at = now_utc()
                session.commit()
                return chain.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"update_chain_status({chain_id}, {status}) failed: {e}")
            raise PersistenceError("Failed to update chain status", detail=str(e)) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def processed_listing_ids(self, listing_ids: list[str]) -> set[str]:
        """Listing ids that already have at least one persisted chain."""
        if not listing_ids:
            return set()
        stmt = (
            select(OwnershipChain.sold_listing_id)
            .where(OwnershipChain.sold_listing_id.in_(listing_ids))
            .distinct()
        )
        try:
            with self._engine.connect() as conn:
                return {row[0] for row in conn.execute(stmt)}
        except SQLAlchemyError as e:
            logger.error(f"processed_listing_ids failed: {e}")
            raise DatabaseUnavailableError("Failed to load existing chains", detail=str(e)) from e

    def list_chains(
        self,
        status: str | None = CHAIN_STATUS_DETECTED,
        min_confidence: int = MIN_CONFIDENCE_SCORE,
        city: str | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Chains ordered by confidence then recency, plus the total match count."""
        conditions = [OwnershipChain.confidence_score >= min_confidence]
        if status:
            conditions.append(OwnershipChain.chain_status == status)
        if city:
            pattern = f"%{city}%"
            conditions.append(
                or_(
                    OwnershipChain.sold_city.ilike(pattern),
                    OwnershipChain.owned_property_city.ilike(pattern),
                )
            )

        stmt = (
            select(OwnershipChain)
            .where(*conditions)
            .order_by(OwnershipChain.confidence_score.desc(), OwnershipChain.detected_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(OwnershipChain).where(*conditions)

        try:
            with Session(self._engine) as session:
                rows = [chain.to_dict() for chain in session.scalars(stmt)]
                total = session.scalar(count_stmt) or 0
        except SQLAlchemyError as e:
            logger.error(f"list_chains failed: {e}")
            raise DatabaseUnavailableError("Failed to load chains", detail=str(e)) from e
        return rows, total

    def get_chain(self, chain_id: str) -> dict[str, Any] | None:
        try:
            with Session(self._engine) as session:
                chain = session.get(OwnershipChain, chain_id)
                return chain.to_dict() if chain else None
        except SQLAlchemyError as e:
            logger.error(f"get_chain({chain_id}) failed: {e}")
            raise DatabaseUnavailableError("Failed to load chain", detail=str(e)) from e

    def check_health(self) -> dict[str, Any]:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"available": True, "dialect": self._engine.dialect.name}
        except SQLAlchemyError as e:
            logger.warning(f"Chain database unavailable: {e}")
            return {"available": False, "error": str(e)}
