"""
futureshop.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn futureshop.api.main:app --reload --port 8000

or ``python -m futureshop serve``.
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

from futureshop.api.deps import get_config, get_engine  # noqa: E402
from futureshop.api.routes.items import router as items_router  # noqa: E402
from futureshop.api.routes.users import router as users_router  # noqa: E402
from futureshop.config import ShopConfig  # noqa: E402
from futureshop.database.engine import init_db  # noqa: E402
from futureshop.errors import ShopError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

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


def _startup_config() -> ShopConfig | None:
    try:
        return get_config()
    except FileNotFoundError:
        logger.warning("config.yaml not found; seeding the default catalog.")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: create tables and seed the catalog."""
    cfg = _startup_config()
    engine = get_engine()
    init_db(engine, seed=cfg.seed_catalog_on_start if cfg else True)
    logger.info(
        "%s API started, engine ready (%s)",
        cfg.shop_name if cfg else "FutureShop",
        engine.url.database,
    )
    yield
    logger.info("FutureShop API shutting down")


app = FastAPI(
    title="FutureShop API",
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


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    """Render a rejection as ``{"success": false, "message", "error"}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "error": exc.code},
    )


# Mount routers
app.include_router(items_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
