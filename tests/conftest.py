from __future__ import annotations

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.models import Base
from marketplace.services.events import event_bus


@pytest.fixture
def isolated_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def patched_task_sessions(monkeypatch, isolated_session_factory):
    import marketplace.tasks.subscription_tasks as subscription_tasks

    @contextmanager
    def _get_db_session():
        session = isolated_session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(subscription_tasks, "get_db_session", _get_db_session)
    return isolated_session_factory


@pytest.fixture(autouse=True)
def _reset_event_bus():
    yield
    event_bus.clear()
