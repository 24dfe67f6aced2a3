"""Request-scoped service construction; overridden in tests."""

from fastapi import Depends
from sqlalchemy.engine import Engine

from src.db.pg import get_engine, resolve_pg_dsn
from src.services.batchdata_client import BatchDataClient
from src.services.chain_detection_service import ChainDetectionService
from src.services.pg_chain_service import PgChainService
from src.services.pg_listing_service import PgListingService


def get_db_engine() -> Engine:
    return get_engine(resolve_pg_dsn())


def get_batchdata_client() -> BatchDataClient:
    # Raises ConfigurationError (500) when BATCH_DATA_API_KEY is unset
    return BatchDataClient()


def get_chain_service(engine: Engine = Depends(get_db_engine)) -> PgChainService:
    return PgChainService(engine=engine)


def get_listing_service(engine: Engine = Depends(get_db_engine)) -> PgListingService:
    return PgListingService(engine=engine)


def get_detection_service(
    client: BatchDataClient = Depends(get_batchdata_client),
    listings: PgListingService = Depends(get_listing_service),
    chains: PgChainService = Depends(get_chain_service),
) -> ChainDetectionService:
    return ChainDetectionService(client=client, listings=listings, chains=chains)
