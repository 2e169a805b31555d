# devicehub/db/session.py
from __future__ import annotations

from pathlib import Path
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from devicehub.db.models import Base  # важно, чтобы модели были импортированы


def _ensure_sqlite_dir(db_url: str) -> None:
    # sqlite:///./data/devices.db  → ./data
    prefix = "sqlite:///"
    if db_url.startswith(prefix):
        fs_path = db_url[len(prefix):]
        # :memory: — ничего не делаем
        if not fs_path or fs_path == ":memory:":
            return
        d = Path(fs_path).resolve().parent
        d.mkdir(parents=True, exist_ok=True)


def create_db_engine(db_url: str) -> Engine:
    _ensure_sqlite_dir(db_url)
    kwargs = {}
    if db_url.startswith("sqlite"):
        # запросы FastAPI обслуживаются в пуле потоков
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(db_url, future=True, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
    """Создать таблицы, если их ещё нет."""
    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
