"""
Chain Detector Web Interface
FastAPI JSON API
"""
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.web.routers import api, chains
from src.services.errors import ChainDetectionError
from src.utils.logging_config import setup_default_logging

# Configure loguru
setup_default_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Chain Detector Web starting up...")
    yield
    logger.info("Chain Detector Web shutting down...")


app = FastAPI(
    title="Chain Detector",
    description="Deed buyer → still-owned property chain lead detection",
    version="0.1.0",
    lifespan=lifespan
)

CORS_ALLOW_ORIGINS = ["*"]

# Browser callers hit the detection endpoint directly; pre-flight must pass
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(chains.router)
app.include_router(api.router, prefix="/api")


# =============================================================================
# Error Handlers
# =============================================================================

def _generate_error_id() -> str:
    """Generate a short error ID for tracking."""
    return str(uuid.uuid4())[:8].upper()


def _cors_headers(request: Request) -> dict:
    """CORS headers for responses built outside CORSMiddleware."""
    origin = request.headers.get("origin")
    if not origin:
        return {}
    if "*" in CORS_ALLOW_ORIGINS:
        return {"Access-Control-Allow-Origin": "*"}
    if origin in CORS_ALLOW_ORIGINS:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def _error_body(error: str, detail: str | None = None) -> dict:
    body = {"error": error}
    if detail:
        body["detail"] = detail
    return body


@app.exception_handler(ChainDetectionError)
async def chain_detection_error_handler(request: Request, exc: ChainDetectionError):
    """Map pipeline errors onto their HTTP status."""
    error_id = _generate_error_id()
    log_fn = logger.warning if exc.status_code < 500 else logger.error
    log_fn(f"HTTP {exc.status_code} [ID: {error_id}]: {exc.message} - {request.method} {request.url}")

    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request {request.method} {request.url}: {exc.errors()}")
    return JSONResponse(status_code=400, content=_error_body("Invalid request", str(exc.errors())))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with detailed logging."""
    error_id = _generate_error_id()

    tb = traceback.format_exc()
    logger.error(
        f"Unhandled exception [ID: {error_id}]\n"
        f"Request: {request.method} {request.url}\n"
        f"Exception: {type(exc).__name__}: {exc}\n"
        f"Traceback:\n{tb}"
    )

    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", f"{type(exc).__name__}: {exc} (error id {error_id})"),
        # Runs in ServerErrorMiddleware, outside CORSMiddleware
        headers=_cors_headers(request),
    )
