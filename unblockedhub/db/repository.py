"""Protocol store, implemented by the remote (SQL) store and the local (key/value) store."""

from typing import Callable, Optional, Protocol

from unblockedhub.core.models import GameRecord, GameUpdate, NewGame
from unblockedhub.sync.broadcast import Unsubscribe

ChangeCallback = Callable[[list[GameRecord]], None]
ReadErrorCallback = Callable[[], None]


class GameStore(Protocol):
    """
    Persistence layer orchestration.
    ---
    Failures never escape these methods: they are logged and reported as [] / None / False.
    """

    def list_games(self) -> list[GameRecord]:
        """All games, most recently created first. Empty if the read failed."""
        ...

    def fetch_games(self) -> list[GameRecord] | None:
        """Same as list_games, but None if the read failed (so an empty catalog can be told apart from a failure)."""
        ...

    def create_game(self, fields: NewGame) -> GameRecord | None:
        """Store a new game. The store assigns id and timestamps."""
        ...

    def update_game(self, game_id: str, changes: GameUpdate) -> GameRecord | None:
        """Merge the supplied fields onto an existing game. None if it does not exist or the write failed."""
        ...

    def delete_game(self, game_id: str) -> bool:
        """Remove a game's record."""
        ...

    def subscribe(
        self, callback: ChangeCallback, on_error: Optional[ReadErrorCallback] = None
    ) -> Unsubscribe:
        """
        Call `callback` with the full, fresh collection whenever the collection changes.
        ---
        When the fresh collection cannot be read, `callback` is not called; `on_error` is, if given.
        """
        ...

    def poll_changes(self) -> int:
        """Deliver changes that are only picked up by asking for them. Returns how many were delivered."""
        ...

    def close(self) -> None:
        """Release the resources held by the store."""
        ...
