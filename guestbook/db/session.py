from __future__ import annotations

import logging
import os
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import Request

from guestbook.db.base import Base
from guestbook.settings import Settings

log = logging.getLogger(__name__)


def make_engine(settings: Settings) -> Engine:
    if settings.db_path != ":memory:":
        parent = os.path.dirname(os.path.abspath(settings.db_path))
        os.makedirs(parent, exist_ok=True)
    return create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(engine: Engine) -> None:
    """Create tables and indexes that do not exist yet. Safe to call on every start."""
    from guestbook.models import entry as _entry  # noqa: F401

    Base.metadata.create_all(engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
