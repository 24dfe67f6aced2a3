import json

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from app.web.dependencies import get_chain_service, get_detection_service
from config.chain_detection import (
    CHAIN_STATUS_DETECTED,
    DEFAULT_QUERY_LIMIT,
    MIN_CONFIDENCE_SCORE,
)
from src.models.ownership import parse_detection_mode
from src.services.chain_detection_service import ChainDetectionService
from src.services.confidence_scorer import confidence_label, describe_signals
from src.services.errors import ClientInputError, NotFoundError
from src.services.pg_chain_service import PgChainService

router = APIRouter(tags=["chains"])


class StatusUpdate(BaseModel):
    status: str


def _with_labels(chain: dict) -> dict:
    """Attach display helpers used by the leads dashboard."""
    return {
        **chain,
        "confidence_label": confidence_label(chain["confidence_score"]),
        "signal_descriptions": describe_signals(chain.get("match_signals")),
    }


@router.post("/detect-ownership-chain")
async def detect_ownership_chain(
    request: Request,
    service: ChainDetectionService = Depends(get_detection_service),
):
    """Run chain detection for a listing id, an address, or a batch of sold listings."""
    logger.info("Chain detection request received")

    raw = await request.body()
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise ClientInputError("Invalid request body", detail=str(e)) from e

    mode = parse_detection_mode(payload)
    result = await run_in_threadpool(service.detect, mode)
    return JSONResponse(result.to_response())


@router.get("/chains")
def list_chains(
    status: str | None = Query(default=CHAIN_STATUS_DETECTED),
    min_confidence: int = Query(default=MIN_CONFIDENCE_SCORE, ge=0, le=100),
    city: str | None = None,
    limit: int = Query(default=DEFAULT_QUERY_LIMIT, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    chains: PgChainService = Depends(get_chain_service),
):
    """Persisted chains, highest confidence first."""
    # Empty ?status= means all statuses
    rows, count = chains.list_chains(
        status=status or None,
        min_confidence=min_confidence,
        city=city,
        limit=limit,
        offset=offset,
    )
    return JSONResponse({"chains": [_with_labels(r) for r in rows], "count": count})


@router.get("/chains/{chain_id}")
def get_chain(chain_id: str, chains: PgChainService = Depends(get_chain_service)):
    chain = chains.get_chain(chain_id)
    if chain is None:
        raise NotFoundError("Chain not found", detail=f"No chain with id {chain_id}")
    return JSONResponse(_with_labels(chain))


@router.patch("/chains/{chain_id}/status")
def update_chain_status(
    chain_id: str,
    update: StatusUpdate,
    chains: PgChainService = Depends(get_chain_service),
):
    chain = chains.update_chain_status(chain_id, update.status)
    if chain is None:
        raise NotFoundError("Chain not found", detail=f"No chain with id {chain_id}")
    logger.info(f"Chain {chain_id} status -> {update.status}")
    return JSONResponse(_with_labels(chain))
