"""FastAPI backend for the claimdesk billing-claims admin tool."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from claimdesk import __version__
from claimdesk.config import CORS_ORIGINS
from claimdesk.errors import ClaimDeskError, PersistenceError
from claimdesk.routes import claims_router, limiter, users_router
from claimdesk.storage import check_connection, init_db, reset_engines

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the schema on startup and release pooled connections on shutdown."""
    init_db()
    yield
    reset_engines()


app = FastAPI(
    title="claimdesk",
    description="Billing claims administration API with field-level change history",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting configuration (login attempts)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(claims_router)
app.include_router(users_router)


@app.exception_handler(ClaimDeskError)
async def claimdesk_error_handler(request: Request, exc: ClaimDeskError):
    """Render service errors in the standard response envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "data": None,
            "error": exc.error_type,
            "message": exc.message,
        },
    )


@app.get("/health")
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/db-test")
async def db_test():
    """Verify the database answers a trivial query."""
    try:
        timestamp = check_connection()
    except PersistenceError as e:
        logger.error(f"Database check failed: {e.message}")
        return JSONResponse(status_code=500, content={"status": "error", "message": e.message})
    return {"status": "success", "timestamp": timestamp.isoformat()}
