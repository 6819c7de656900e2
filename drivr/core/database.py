"""Engine construction, schema bootstrap and the request session dependency."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

_url = make_url(DATABASE_URL)
_connect_args = {}
if _url.get_backend_name() == "sqlite":
    _connect_args = {"check_same_thread": False}
    if _url.database and _url.database != ":memory:":
        Path(_url.database).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)


def init_db(reset: bool = False) -> None:
    """Create missing tables; with ``reset`` every table is dropped first."""

    if reset:
        logger.warning(
            "DB_RESET set: dropping all tables on %s", _url.render_as_string(hide_password=True)
        )
        SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""

    with Session(engine) as session:
        yield session


__all__ = ["engine", "get_session", "init_db"]
