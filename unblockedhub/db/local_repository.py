"""Implementation of GameStore on on-device key/value storage (the local fallback store)"""

import time
from typing import Optional
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from unblockedhub.core.app_logger import get_logger
from unblockedhub.core.exceptions import RepositoryError
from unblockedhub.core.models import (
    GameRecord,
    GameUpdate,
    NewGame,
    next_timestamp,
    utc_now,
)
from unblockedhub.db.local_storage import KeyValueStorage
from unblockedhub.db.repository import ChangeCallback, ReadErrorCallback
from unblockedhub.sync.broadcast import BroadcastChannel, Message, Unsubscribe

logger = get_logger(__name__)

GAMES_KEY = "unblockedGames"
UPDATE_TOPIC = "gameUpdate"

_GAME_LIST = TypeAdapter(list[GameRecord])


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class LocalGameStore:
    """
    The whole collection is one serialized value under GAMES_KEY.

    Every mutation rewrites that value, then broadcasts UPDATE_TOPIC on `channel` tagged with this store's `client_id`.
    Subscribers of the same store never hear their own broadcasts (like storage events between browser tabs),
    so whoever performs a write has to apply its return value itself.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        channel: BroadcastChannel,
        client_id: str | None = None,
    ) -> None:
        self.storage = storage
        self.channel = channel
        self.client_id = client_id or uuid4().hex
        self._last_id = 0

    def list_games(self) -> list[GameRecord]:
        games = self.fetch_games()
        return games if games is not None else []

    def fetch_games(self) -> list[GameRecord] | None:
        try:
            return self._read_games()
        except RepositoryError:
            logger.exception("Error fetching games")
            return None

    def create_game(self, fields: NewGame) -> GameRecord | None:
        try:
            games = self._read_games()
            now = utc_now()
            new_game = GameRecord(
                id=self._new_id(games),
                title=fields.title,
                description=fields.description,
                category=fields.category,
                color=fields.color,
                url=fields.url,
                created_at=now,
                updated_at=now,
            )
            self._write_games([new_game, *games])
        except RepositoryError:
            logger.exception("Error adding game %r", fields.title)
            return None
        return new_game

    def update_game(self, game_id: str, changes: GameUpdate) -> GameRecord | None:
        try:
            games = self._read_games()
            index = next((i for i, g in enumerate(games) if g.id == game_id), None)
            if index is None:
                logger.warning("Cannot update game %s: no such record", game_id)
                return None

            current = games[index]
            updated = GameRecord.model_validate(
                {
                    **current.model_dump(),
                    **changes.changes(),
                    "updated_at": next_timestamp(current.updated_at),
                }
            )
            games[index] = updated
            self._write_games(games)
        except RepositoryError:
            logger.exception("Error updating game %s", game_id)
            return None
        return updated

    def delete_game(self, game_id: str) -> bool:
        """Remove a game's record. Deleting an unknown id still counts as a success."""
        try:
            games = self._read_games()
            self._write_games([g for g in games if g.id != game_id])
        except RepositoryError:
            logger.exception("Error deleting game %s", game_id)
            return False
        return True

    def subscribe(
        self, callback: ChangeCallback, on_error: Optional[ReadErrorCallback] = None
    ) -> Unsubscribe:
        """Writes by other clients on the same storage re-read the collection and pass it to `callback` (or call `on_error` if it cannot be read)."""

        def on_update(message: Message) -> None:
            games = self.fetch_games()
            if games is None:
                logger.warning("Skipping update from %s: re-read failed", message.sender)
                if on_error is not None:
                    on_error()
                return
            callback(games)

        return self.channel.subscribe(
            on_update, topic=UPDATE_TOPIC, receiver=self.client_id
        )

    def poll_changes(self) -> int:
        """Broadcasts reach subscribers as they are sent: nothing is ever waiting to be polled."""
        return 0

    def close(self) -> None:
        """Nothing to release: storage files are opened per call."""

    def _read_games(self) -> list[GameRecord]:
        try:
            raw = self.storage.get(GAMES_KEY)
            if raw is None:
                return []
            return _GAME_LIST.validate_json(raw)
        except (OSError, ValidationError) as exc:
            raise RepositoryError(f"Cannot read {GAMES_KEY!r} from local storage") from exc

    def _write_games(self, games: list[GameRecord]) -> None:
        try:
            self.storage.set(GAMES_KEY, _GAME_LIST.dump_json(games).decode("utf-8"))
        except OSError as exc:
            raise RepositoryError(f"Cannot write {GAMES_KEY!r} to local storage") from exc
        self.channel.publish(UPDATE_TOPIC, str(_now_ms()), sender=self.client_id)

    def _new_id(self, games: list[GameRecord]) -> str:
        """Millisecond timestamp, bumped until it is unique in the collection and larger than the last one handed out."""
        taken = {g.id for g in games}
        candidate = max(_now_ms(), self._last_id + 1)
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)
