"""
commonroom.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn commonroom.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

load_dotenv()

from commonroom.api.deps import get_config, get_engine, get_store  # noqa: E402
from commonroom.api.routes.suggestions import router as suggestions_router  # noqa: E402
from commonroom.database.engine import run_db  # noqa: E402
from commonroom.errors import CommonRoomError  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the engine, config and Redis."""
    cfg = get_config()
    engine = get_engine()
    try:
        redis_ok = await run_db(get_store().ping)
    except RedisError as exc:
        logger.warning("Redis ping failed at startup: %s", exc)
        redis_ok = False
    logger.info(
        "%s started — engine ready (%s), redis %s, %d target dates",
        cfg.app_name,
        engine.url.database,
        "ok" if redis_ok else "unreachable",
        len(cfg.target_dates),
    )
    yield
    logger.info("%s shutting down", cfg.app_name)


app = FastAPI(
    title="CommonRoom Suggestions API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(suggestions_router, prefix="/api")


@app.exception_handler(CommonRoomError)
async def commonroom_error_handler(request: Request, exc: CommonRoomError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError):
    logger.error(
        "%s %s: shared state store unavailable: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": "Shared state store unavailable"},
    )


@app.get("/api/health")
def health():
    return {"status": "ok"}
