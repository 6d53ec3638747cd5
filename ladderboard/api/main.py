"""
ladderboard.api.main — FastAPI application entry point
========================================================

Serves the public leaderboard, the single-member sync trigger and the
JWT-protected admin routes, all under ``/api``.

Run with::

    uvicorn ladderboard.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from ladderboard.api.deps import get_engine, get_riot_client  # noqa: E402
from ladderboard.api.routes.admin import router as admin_router  # noqa: E402
from ladderboard.api.routes.members import router as members_router  # noqa: E402
from ladderboard.api.routes.public import router as public_router  # noqa: E402
from ladderboard.database.engine import init_db  # noqa: E402

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"


def _allowed_origins() -> list[str]:
    """``CORS_ALLOW_ORIGINS`` (comma-separated), else ``FRONTEND_URL``, else none."""
    configured = os.getenv("CORS_ALLOW_ORIGINS") or os.getenv("FRONTEND_URL") or ""
    return [o.strip().rstrip("/") for o in configured.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    engine = get_engine()
    init_db(engine)
    logger.info("Ladderboard API ready — database %s", engine.url.database)
    yield
    get_riot_client().close()
    logger.info("Ladderboard API stopped; Riot client closed")


app = FastAPI(title="Ladderboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["Retry-After"],
)

for router in (public_router, members_router, admin_router):
    app.include_router(router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
