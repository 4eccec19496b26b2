"""Orchestration between consumers of the catalog and the active store: displayed state, change reconciliation, notifications."""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from unblockedhub.core.app_logger import get_logger
from unblockedhub.core.catalog import ALL_CATEGORIES, filter_games
from unblockedhub.core.models import GameRecord, GameUpdate, NewGame
from unblockedhub.core.shared_types import ConnectionStatus
from unblockedhub.services.backend import ActiveBackend
from unblockedhub.sync.broadcast import Unsubscribe

logger = get_logger(__name__)

ADD_FAILED = "Failed to add game. Please try again."
UPDATE_FAILED = "Failed to update game. Please try again."
DELETE_FAILED = "Failed to delete game. Please try again."


class CatalogService:
    """
    Holds the displayed collection and keeps it in line with the store.

    Change notifications carry the full collection:
    - more games than before (and not the very first load) -> the new collection is held back as `pending`
      and the "new games available" notification is shown, until `reload()` or `dismiss_notification()`;
    - same number or fewer -> applied to `games` straight away, silently.
    Writes made through this service are applied from their return value, never announced as new content.
    If a notification cannot be turned into a fresh collection, the displayed one is kept and the service goes offline.

    Notifications may arrive on a listener thread: state changes are made under `_lock`,
    which is never held while calling into the backend.
    """

    def __init__(self, backend: ActiveBackend) -> None:
        self.backend = backend
        self.games: list[GameRecord] = []
        self.last_count: Optional[int] = None
        self.pending: Optional[list[GameRecord]] = None
        self.notification_visible = False
        self.is_loading = False
        self.is_online = True
        self.last_error: Optional[str] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._own_writes = 0
        self._lock = threading.RLock()

    # -- Lifecycle --
    def start(self) -> list[GameRecord]:
        """Initial load, then listen for changes."""
        self.is_loading = True
        try:
            games = self.backend.list_games()
        finally:
            self.is_loading = False
        self._show(games)

        if self._unsubscribe is None:
            self._unsubscribe = self.backend.subscribe(self.handle_change, on_error=self.handle_read_error)
        return self.games

    def stop(self) -> None:
        """Release the change subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def connection_status(self) -> ConnectionStatus:
        return ConnectionStatus.from_flags(self.backend.remote_connected, self.is_online)

    def set_online(self, online: bool) -> None:
        """Transport signal. Going offline never switches backends."""
        with self._lock:
            if online != self.is_online:
                logger.info("Connection %s", "restored" if online else "lost")
            self.is_online = online

    # -- Change reconciliation --
    def handle_change(self, games: list[GameRecord]) -> None:
        """Subscription callback: a fresh, full collection from the store."""
        with self._lock:
            previous = self.last_count
            grew = previous is not None and len(games) > previous

            if grew and not self._own_writes:
                self.last_count = len(games)
                self.pending = list(games)
                self.notification_visible = True
                logger.info("%d new game(s) available", len(games) - previous)
                return

            # A held back collection is superseded by this one: its notification goes with it
            if self.pending is not None:
                self.pending = None
                self.notification_visible = False
            self._show(games)

    def handle_read_error(self) -> None:
        """Subscription error callback: a change happened but the fresh collection could not be read."""
        with self._lock:
            logger.warning("Change notification could not be applied, keeping the current collection")
            self.set_online(False)

    def reload(self) -> list[GameRecord]:
        """Re-fetch everything and hide the notification. Safe to call any number of times."""
        self.is_loading = True
        try:
            games = self.backend.fetch_games()
        finally:
            self.is_loading = False

        with self._lock:
            if games is None:
                logger.warning("Failed to reload games, keeping the current collection")
                self.is_online = False
            else:
                self.is_online = True
                self._show(games)

            self.pending = None
            self.notification_visible = False
            return list(self.games)

    def dismiss_notification(self) -> None:
        """Hide the notification. The displayed collection stays as it is."""
        with self._lock:
            self.notification_visible = False

    # -- Writes --
    def create_game(self, fields: NewGame) -> GameRecord | None:
        with self._own_write():
            created = self.backend.create_game(fields)
        if created is None:
            self._fail(ADD_FAILED)
            return None

        with self._lock:
            self.last_error = None
            self._show([created, *(g for g in self.games if g.id != created.id)])
        return created

    def update_game(self, game_id: str, changes: GameUpdate) -> GameRecord | None:
        with self._own_write():
            updated = self.backend.update_game(game_id, changes)
        if updated is None:
            self._fail(UPDATE_FAILED)
            return None

        with self._lock:
            self.last_error = None
            self._show([updated if g.id == game_id else g for g in self.games])
        return updated

    def delete_game(self, game_id: str) -> bool:
        with self._own_write():
            deleted = self.backend.delete_game(game_id)
        if not deleted:
            self._fail(DELETE_FAILED)
            return False

        with self._lock:
            self.last_error = None
            self._show([g for g in self.games if g.id != game_id])
        return True

    # -- Reads --
    def visible_games(self, category: str = ALL_CATEGORIES, search: str = "") -> list[GameRecord]:
        with self._lock:
            games = list(self.games)
        return filter_games(games, category=category, search=search)

    # -- Internal helpers --
    def _show(self, games: list[GameRecord]) -> None:
        with self._lock:
            self.games = list(games)
            self.last_count = len(self.games)

    def _fail(self, message: str) -> None:
        logger.error(message)
        with self._lock:
            self.last_error = message

    @contextmanager
    def _own_write(self) -> Iterator[None]:
        """Changes that echo back from our own write (the remote feed includes the writer) are applied silently."""
        with self._lock:
            self._own_writes += 1
        try:
            yield
        finally:
            with self._lock:
                self._own_writes -= 1
