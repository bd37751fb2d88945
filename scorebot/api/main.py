"""
scorebot.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn scorebot.api.main:app --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from scorebot.api.deps import get_engine  # noqa: E402
from scorebot.api.routes.admin import router as admin_router  # noqa: E402
from scorebot.api.routes.public import router as public_router  # noqa: E402
from scorebot.errors import (  # noqa: E402
    AlreadyCompleted,
    ExternalServiceError,
    InvalidStateTransition,
    MissingEmail,
    NotFound,
    PermissionDenied,
    ScoreBotError,
    StorageError,
    UnknownRewardType,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS: list[tuple[type[ScoreBotError], int]] = [
    (ValidationError, 422),
    (UnknownRewardType, 422),
    (MissingEmail, 422),
    (PermissionDenied, 403),
    (NotFound, 404),
    (InvalidStateTransition, 409),
    (AlreadyCompleted, 409),
    (ExternalServiceError, 502),
    (StorageError, 503),
]


def status_for(exc: ScoreBotError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]
    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("ScoreBot API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("ScoreBot API shutting down")


app = FastAPI(
    title="ScoreBot API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScoreBotError)
async def scorebot_error_handler(request: Request, exc: ScoreBotError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=code,
        content={"detail": exc.user_message, "error": type(exc).__name__},
    )


app.include_router(public_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
