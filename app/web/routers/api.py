from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.web.dependencies import get_chain_service
from src.services.pg_chain_service import PgChainService

router = APIRouter(tags=["api"])


@router.get("/health")
def api_health(chains: PgChainService = Depends(get_chain_service)):
    """API health check with database status."""
    db_status = chains.check_health()
    return JSONResponse({
        "status": "ok" if db_status["available"] else "degraded",
        "database": db_status
    })
