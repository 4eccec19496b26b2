"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from unblockedhub.core.config import HubSettings
from unblockedhub.core.models import NewGame
from unblockedhub.db.local_repository import LocalGameStore
from unblockedhub.db.local_storage import FileKeyValueStorage
from unblockedhub.db.schema import Base
from unblockedhub.db.sql_repository import SQLGameStore
from unblockedhub.sync.broadcast import BroadcastChannel, BroadcastHub

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Sessions on a test database. Tables are removed at teardown to keep tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def sql_store(session_factory: sessionmaker[Session]) -> SQLGameStore:
    return SQLGameStore(session_factory)


@pytest.fixture
def other_sql_store(session_factory: sessionmaker[Session]) -> SQLGameStore:
    """Second client on the same database, with its own change feed cursor. Mock real setup with multiple clients."""
    return SQLGameStore(session_factory)


@pytest.fixture
def storage(tmp_path: Path) -> FileKeyValueStorage:
    return FileKeyValueStorage(tmp_path / "storage")


@pytest.fixture
def local_channel(hub: BroadcastHub, storage: FileKeyValueStorage) -> BroadcastChannel:
    return hub.channel(f"local:{storage.identity}")


@pytest.fixture
def local_store(
    storage: FileKeyValueStorage, local_channel: BroadcastChannel
) -> LocalGameStore:
    return LocalGameStore(storage, local_channel, client_id="tab-1")


@pytest.fixture
def other_local_store(
    storage: FileKeyValueStorage, local_channel: BroadcastChannel
) -> LocalGameStore:
    """Second 'tab' on the same device storage."""
    return LocalGameStore(storage, local_channel, client_id="tab-2")


@pytest.fixture
def local_settings(tmp_path: Path) -> HubSettings:
    """No remote configured: only the local store is available."""
    return HubSettings(
        _env_file=None,
        database_url=None,
        local_storage_dir=tmp_path / "local",
    )


@pytest.fixture
def remote_settings(tmp_path: Path) -> HubSettings:
    """
    File based SQLite, so several engines (clients) can open the same database.
    No background listener: tests deliver changes by other clients with an explicit poll.
    """
    return HubSettings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'hub.db'}",
        feed_poll_interval_s=0,
        local_storage_dir=tmp_path / "local",
    )


@pytest.fixture
def maze() -> NewGame:
    return NewGame(
        title="Maze",
        description="",
        category="Puzzle",
        color="c1",
        url="https://x/maze",
    )


@pytest.fixture
def snake() -> NewGame:
    return NewGame(
        title="Snake",
        description="Eat the apples, avoid your tail",
        category="Arcade",
        color="bg-green-500",
        url="<iframe src='https://x/snake'></iframe>",
    )
