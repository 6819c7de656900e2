"""ASGI entry point for the segments and leaderboard service."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from . import models  # noqa: F401 - registers the tables on SQLModel.metadata
from .api import install_api
from .core import (
    ALLOWED_CORS_ORIGINS,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DB_RESET,
    LOG_LEVEL,
    MATCH_IN_BACKGROUND,
    SECRET_KEY,
    init_db,
)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(reset=DB_RESET)
    logger.info(
        "Drivr API ready (segment matching %s)",
        "in background" if MATCH_IN_BACKGROUND else "inline",
    )
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Drivr Segments API", version="0.3.0", lifespan=lifespan)

    # Session cookie carries the signed-in driver's id.
    app.add_middleware(
        SessionMiddleware,
        secret_key=SECRET_KEY,
        session_cookie="sid",
        https_only=COOKIE_SECURE,
        same_site=COOKIE_SAMESITE,
        domain=COOKIE_DOMAIN,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    install_api(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("drivr.app:app", host="0.0.0.0", port=3000, reload=True)
