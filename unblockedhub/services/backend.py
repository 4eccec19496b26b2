"""
Backend selection.

At startup the remote (SQL) store is tried first. If it cannot be acquired, the local store is used instead.
The decision is made once: the returned ActiveBackend keeps that store for its whole lifetime.
"""

from typing import Optional

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from unblockedhub.core.app_logger import get_logger
from unblockedhub.core.config import HubSettings
from unblockedhub.core.exceptions import BackendUnavailableError
from unblockedhub.core.models import GameRecord, GameUpdate, NewGame
from unblockedhub.db.database import init_schema, make_engine, make_session_factory, probe
from unblockedhub.db.local_repository import LocalGameStore
from unblockedhub.db.local_storage import FileKeyValueStorage
from unblockedhub.db.repository import ChangeCallback, GameStore, ReadErrorCallback
from unblockedhub.db.sql_repository import SQLGameStore
from unblockedhub.sync.broadcast import BroadcastHub, Unsubscribe, default_hub
from unblockedhub.sync.listener import ChangeFeedListener

logger = get_logger(__name__)


class ActiveBackend:
    """
    Single handle on the selected store. All catalog operations go through here.
    ---
    If a `listener` is given, it starts with the first subscription and stops on `close()`.
    """

    def __init__(
        self,
        store: GameStore,
        *,
        remote_connected: bool,
        engine: Engine | None = None,
        listener: ChangeFeedListener | None = None,
    ) -> None:
        self._store = store
        self._remote_connected = remote_connected
        self._engine = engine
        self._listener = listener

    @property
    def store(self) -> GameStore:
        return self._store

    @property
    def remote_connected(self) -> bool:
        return self._remote_connected

    @property
    def listener(self) -> ChangeFeedListener | None:
        return self._listener

    def list_active(self) -> GameStore:
        """The store that was resolved at startup."""
        return self._store

    # -- Consumer-facing API, forwarded to the active store --
    def list_games(self) -> list[GameRecord]:
        return self._store.list_games()

    def fetch_games(self) -> list[GameRecord] | None:
        return self._store.fetch_games()

    def create_game(self, fields: NewGame) -> GameRecord | None:
        return self._store.create_game(fields)

    def update_game(self, game_id: str, changes: GameUpdate) -> GameRecord | None:
        return self._store.update_game(game_id, changes)

    def delete_game(self, game_id: str) -> bool:
        return self._store.delete_game(game_id)

    def subscribe(
        self, callback: ChangeCallback, on_error: Optional[ReadErrorCallback] = None
    ) -> Unsubscribe:
        unsubscribe = self._store.subscribe(callback, on_error)
        if self._listener is not None:
            self._listener.start()
        return unsubscribe

    def poll_changes(self) -> int:
        return self._store.poll_changes()

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
        self._store.close()
        if self._engine is not None:
            self._engine.dispose()


def connect_remote(settings: HubSettings) -> tuple[SQLGameStore, Engine]:
    """Build the SQL store, or raise BackendUnavailableError."""
    if not settings.database_url:
        raise BackendUnavailableError("No database url configured for the remote store.")

    try:
        engine = make_engine(settings.database_url, echo=settings.db_echo)
    except (SQLAlchemyError, ImportError) as exc:
        raise BackendUnavailableError(f"Cannot create database engine: {exc}") from exc

    try:
        init_schema(engine)
        probe(engine)
    except SQLAlchemyError as exc:
        engine.dispose()
        raise BackendUnavailableError(f"Database is not reachable: {exc}") from exc

    return SQLGameStore(make_session_factory(engine)), engine


def open_local(settings: HubSettings, hub: BroadcastHub) -> LocalGameStore:
    storage = FileKeyValueStorage(settings.local_storage_dir)
    return LocalGameStore(storage, hub.channel(f"local:{storage.identity}"))


def select_backend(
    settings: HubSettings | None = None, hub: BroadcastHub | None = None
) -> ActiveBackend:
    """
    Prefer the remote store, fall back to the local store on any failure to acquire it.
    ---
    Remote clients follow the database change log, so they hear each other across processes.
    Local clients signal each other through `hub`, by default the one shared by the whole process.
    """
    settings = settings or HubSettings()

    try:
        store, engine = connect_remote(settings)
    except BackendUnavailableError as exc:
        logger.warning("Remote store not available, using local storage fallback: %s", exc)
        return ActiveBackend(open_local(settings, hub or default_hub()), remote_connected=False)

    logger.info("Connected to remote store at %s", engine.url.render_as_string(hide_password=True))
    listener = None
    if settings.feed_poll_interval_s > 0:
        listener = ChangeFeedListener(store.poll_changes, settings.feed_poll_interval_s)
    return ActiveBackend(store, remote_connected=True, engine=engine, listener=listener)
