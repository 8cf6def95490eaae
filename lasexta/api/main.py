"""
lasexta.api.main — FastAPI application entry point
====================================================

Run with::

    uvicorn lasexta.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from lasexta import __version__  # noqa: E402
from lasexta.api.auth import router as auth_router  # noqa: E402
from lasexta.api.deps import get_engine, get_event_hub  # noqa: E402
from lasexta.api.errors import install_error_handlers  # noqa: E402
from lasexta.api.routes import benefits, events, rewards  # noqa: E402
from lasexta.api.routes.admin import router as admin_router  # noqa: E402
from lasexta.api.routes.notifications import router as notifications_router  # noqa: E402
from lasexta.api.routes.points import router as points_router  # noqa: E402
from lasexta.api.routes.tickets import router as tickets_router  # noqa: E402
from lasexta.database.engine import init_db  # noqa: E402

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
    """Create tables and seed accounts on startup; close streams on shutdown."""
    engine = get_engine()
    init_db(engine)
    logger.info("La Sexta API started — engine ready (%s)", engine.url.database)
    yield
    get_event_hub().close_all()
    logger.info("La Sexta API shutting down")


app = FastAPI(
    title="La Sexta API",
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

install_error_handlers(app)

# Mount routers
for router in (
    auth_router,
    tickets_router,
    points_router,
    notifications_router,
    events.router,
    benefits.router,
    rewards.router,
    admin_router,
    events.admin_router,
    benefits.admin_router,
    rewards.admin_router,
):
    app.include_router(router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
