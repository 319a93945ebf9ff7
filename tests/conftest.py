from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.base import Base
from db import models  # noqa: F401
from db.storage import Storage


@pytest.fixture()
def storage():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    yield Storage(factory)
    engine.dispose()


@pytest.fixture(autouse=True)
def media_temp_dir(tmp_path, monkeypatch):
    path = tmp_path / "media"
    monkeypatch.setenv("MEDIA_TEMP_DIR", str(path))
    return path
