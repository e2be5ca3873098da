from __future__ import annotations

import os
from pathlib import Path
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("BOT_TOKEN", "123456:test-bot-token")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import database  # noqa: E402


@pytest.fixture(autouse=True)
def db_engine(monkeypatch: pytest.MonkeyPatch):
    """Отдельная in-memory SQLite на каждый тест."""
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", testing_session_local)
    database.init_db()

    yield engine

    engine.dispose()
