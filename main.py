"""
Main entry point for Chain Detector.
Supports modes:
  --web: Start web server
  --init-db: Create ownership_chains / listings tables
  --scan: Batch scan recent sold listings
  --listing ID: Detect chains for one stored listing
  --address STREET CITY STATE ZIP: Detect chains for an address
"""
import argparse
import json
import os
import sys

from loguru import logger

from config.chain_detection import DEFAULT_BATCH_LIMIT, MAX_BATCH_LIMIT
from src.db.pg import create_schema, get_engine, resolve_pg_dsn
from src.models.ownership import BatchScan, ByAddress, ByListingId
from src.services.errors import ChainDetectionError
from src.utils.logging_config import setup_default_logging


def handle_init_db(dsn: str):
    engine = get_engine(dsn)
    create_schema(engine)
    logger.success(f"Schema ready on {engine.url.render_as_string(hide_password=True)}")


def handle_detect(dsn: str, mode, persist: bool = True) -> int:
    from src.services.batchdata_client import BatchDataClient
    from src.services.chain_detection_service import ChainDetectionService
    from src.services.pg_chain_service import PgChainService
    from src.services.pg_listing_service import PgListingService

    engine = get_engine(dsn)
    try:
        service = ChainDetectionService(
            client=BatchDataClient(),
            listings=PgListingService(engine=engine),
            chains=PgChainService(engine=engine),
            persist=persist,
        )
        result = service.detect(mode)
    except ChainDetectionError as e:
        logger.error(f"{e.message}{f' ({e.detail})' if e.detail else ''}")
        return 1

    print(json.dumps(result.to_response(), indent=2))
    if result.persisted:
        logger.info(f"Persisted: {result.persisted}")
    return 0


def handle_web(port: int):
    """Start the web server."""
    import uvicorn

    logger.info(f"Starting web server on port {port}...")
    uvicorn.run(
        "app.web.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


def main():
    parser = argparse.ArgumentParser(description="Chain Detector Main Controller")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--web", action="store_true", help="Start web server")
    group.add_argument("--init-db", action="store_true", help="Create database tables")
    group.add_argument("--scan", action="store_true", help="Batch scan recent sold listings")
    group.add_argument("--listing", type=str, metavar="ID", help="Detect chains for a stored sold listing")
    group.add_argument("--address", nargs=4, metavar=("STREET", "CITY", "STATE", "ZIP"),
                       help="Detect chains for an address")
    parser.add_argument("--port", type=int, default=int(os.getenv("WEB_PORT", "8080")),
                        help="Port for web server (default 8080 or WEB_PORT env var)")
    parser.add_argument("--limit", type=int, default=DEFAULT_BATCH_LIMIT,
                        help=f"Sold listings considered by --scan (default {DEFAULT_BATCH_LIMIT})")
    parser.add_argument("--dsn", type=str, default=None,
                        help="Database DSN (default CHAIN_PG_DSN env var)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Detect chains without saving them")

    args = parser.parse_args()
    setup_default_logging()
    dsn = resolve_pg_dsn(args.dsn)

    if not 1 <= args.limit <= MAX_BATCH_LIMIT:
        logger.error(f"--limit must be between 1 and {MAX_BATCH_LIMIT}")
        sys.exit(2)

    if args.web:
        handle_web(args.port)
    elif args.init_db:
        handle_init_db(dsn)
    elif args.scan:
        sys.exit(handle_detect(dsn, BatchScan(limit=args.limit), persist=not args.dry_run))
    elif args.listing:
        sys.exit(handle_detect(dsn, ByListingId(listing_id=args.listing), persist=not args.dry_run))
    elif args.address:
        sys.exit(handle_detect(dsn, ByAddress(*args.address), persist=not args.dry_run))


if __name__ == "__main__":
    main()
