import base64
import os
from datetime import datetime, timedelta

# Settings are read once at import time; set them before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DISPATCH_INTERVAL_SECONDS", "0")
os.environ.setdefault("API_USERNAME", "user")
os.environ.setdefault("API_PASSWORD", "pass")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from broadcast_task_scheduler import db as db_module
from broadcast_task_scheduler import models, scheduler
from broadcast_task_scheduler.db import Base, get_session
from broadcast_task_scheduler.main import app
from broadcast_task_scheduler.models import TaskStatus
from broadcast_task_scheduler.store import TaskStore

AUTH_HEADERS = {
    "Authorization": "Basic " + base64.b64encode(b"user:pass").decode("ascii")
}


@pytest.fixture(scope="session")
def db_engine():
    # One shared in-memory SQLite across all connections/threads
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    # Make the app/dispatcher use this same engine
    db_module.SessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False
    )
    return engine


@pytest.fixture(scope="function")
def db_session(db_engine):
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.rollback()
        session.query(models.Task).delete()
        session.commit()
        session.close()
        scheduler.shutdown()


@pytest.fixture
def store(db_session):
    return TaskStore(db_session)


@pytest.fixture
def make_task(store):
    """Insert a task; later calls get later `created_at` values by default."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "id": f"task-{n}",
            "station_id": "TBS",
            "title": f"program {n}",
            "personality": "Doe",
            "from_time": "202401010300",
            "to_time": "202401010500",
            "duration": "120",
            "status": TaskStatus.PENDING,
            "created_at": datetime(2024, 1, 30, 23, 0) + timedelta(minutes=n),
        }
        fields.update(overrides)
        return store.add(models.Task(**fields))

    return _make


@pytest.fixture(scope="function")
def client(db_session):
    def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as c:
        c.headers.update(AUTH_HEADERS)
        yield c
    app.dependency_overrides.clear()
