"""
privatepartyy.api.main — FastAPI application entry point
=========================================================

Run with::

    uvicorn privatepartyy.api.main:app --reload --port 8000

or ``python -m privatepartyy``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles

load_dotenv()

from privatepartyy import __version__  # noqa: E402
from privatepartyy.api.deps import get_config, get_engine, get_storage  # noqa: E402
from privatepartyy.api.routes.dm import router as dm_router  # noqa: E402
from privatepartyy.api.routes.events import router as events_router  # noqa: E402
from privatepartyy.api.routes.maintenance import router as maintenance_router  # noqa: E402
from privatepartyy.api.routes.posts import router as posts_router  # noqa: E402
from privatepartyy.api.routes.preferences import router as preferences_router  # noqa: E402
from privatepartyy.api.routes.profiles import router as profiles_router  # noqa: E402
from privatepartyy.api.routes.qr import router as qr_router  # noqa: E402
from privatepartyy.api.routes.social import router as social_router  # noqa: E402
from privatepartyy.api.routes.uploads import router as uploads_router  # noqa: E402
from privatepartyy.errors import PrivatePartyyError, RateLimitError  # noqa: E402
from privatepartyy.services.storage import LocalStorage  # noqa: E402

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
    """Startup/shutdown lifecycle — warm the DB engine and storage."""
    engine = get_engine()
    cfg = get_config()
    storage = get_storage()

    if isinstance(storage, LocalStorage):
        storage.ensure_root()
        # Photos written through signed URLs are served straight from disk
        app.mount(storage.url_prefix, StaticFiles(directory=str(storage.root)), name="media")

    logger.info(
        "%s API started — engine ready (%s), storage=%s",
        cfg.app_name, engine.url.database, cfg.storage_backend,
    )
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="PrivatePartyy API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handlers → {"error": ..., "details"?: ...}
# ---------------------------------------------------------------------------
@app.exception_handler(PrivatePartyyError)
async def _domain_error(request: Request, exc: PrivatePartyyError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


@app.exception_handler(HTTPException)
async def _http_error(request: Request, exc: HTTPException):
    return JSONResponse(
        {"error": exc.detail}, status_code=exc.status_code, headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse({"error": "Validation failed", "details": details}, status_code=400)


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# Mount routers
app.include_router(preferences_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(social_router, prefix="/api")
app.include_router(dm_router, prefix="/api")
app.include_router(uploads_router, prefix="/api")
app.include_router(qr_router, prefix="/api")
app.include_router(maintenance_router, prefix="/api")
app.include_router(profiles_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
