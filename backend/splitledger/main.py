"""
FastAPI entrypoint for the SplitLedger backend application.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from splitledger.core.config import settings
from splitledger.core.cache import build_cache
from splitledger.core.clock import system_clock
from splitledger.core.exceptions import LedgerError
from splitledger.core.utils import format_error
from splitledger.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the cache on startup and disconnect it on shutdown."""
    cache = build_cache()
    try:
        cache.connect()
    except Exception as e:
        logger.warning(f"Cache unavailable, continuing without it: {e}")
        cache = build_cache("none")
    app.state.cache = cache
    app.state.clock = system_clock
    yield
    cache.disconnect()


app = FastAPI(
    title="SplitLedger API",
    description="Backend API for shared group expenses and settlements",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Return ledger errors to the caller with their status code."""
    if exc.status_code >= 409:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(exc.message, exc.details) | {"type": type(exc).__name__}
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "SplitLedger API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
