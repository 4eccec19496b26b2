"""Implementation of GameStore on a relational table using SQLAlchemy (the remote store)"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from unblockedhub.core.app_logger import get_logger
from unblockedhub.core.models import (
    ChangeEvent,
    GameRecord,
    GameUpdate,
    NewGame,
    next_timestamp,
    utc_now,
)
from unblockedhub.core.shared_types import ChangeType
from unblockedhub.db.change_feed import SQLChangeFeed
from unblockedhub.db.repository import ChangeCallback, ReadErrorCallback
from unblockedhub.db.schema import DBGame
from unblockedhub.sync.broadcast import Unsubscribe

logger = get_logger(__name__)


class SQLGameStore:
    """
    Data stored using SQL / methods implemented using SQLAlchemy.

    Every successful write is logged in the table's change feed within the same transaction, so all clients
    of the same database, including the writer itself, learn about it and re-read the collection.
    Changes by this client are delivered right after the write; changes by others on `poll_changes()`.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        feed: Optional[SQLChangeFeed] = None,
    ) -> None:
        self.session_factory = session_factory
        self.feed = feed or SQLChangeFeed(session_factory)

    def list_games(self) -> list[GameRecord]:
        games = self.fetch_games()
        return games if games is not None else []

    def fetch_games(self) -> list[GameRecord] | None:
        # populate_existing: rows changed by other clients must not come back stale from the identity map
        query = (
            select(DBGame)
            .order_by(DBGame.created_at.desc())
            .execution_options(populate_existing=True)
        )
        try:
            with self.session_factory() as db:
                return [self._to_record(game_db) for game_db in db.scalars(query)]
        except SQLAlchemyError:
            logger.exception("Error fetching games")
            return None

    def create_game(self, fields: NewGame) -> GameRecord | None:
        now = utc_now()
        game_db = DBGame(
            title=fields.title,
            description=fields.description,
            category=fields.category.value,
            color=fields.color,
            url=fields.url,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.session_factory() as db:
                db.add(game_db)
                db.flush()
                self.feed.record(db, ChangeType.INSERT, game_db.id)
                db.commit()
                db.refresh(game_db)
                record = self._to_record(game_db)
        except SQLAlchemyError:
            logger.exception("Error adding game %r", fields.title)
            return None

        self.feed.poll()
        return record

    def update_game(self, game_id: str, changes: GameUpdate) -> GameRecord | None:
        try:
            with self.session_factory() as db:
                game_db = self._fetch_game(db, game_id)
                if game_db is None:
                    logger.warning("Cannot update game %s: no such record", game_id)
                    return None
                for field, value in changes.changes().items():
                    setattr(game_db, field, value)
                game_db.updated_at = next_timestamp(game_db.updated_at)
                self.feed.record(db, ChangeType.UPDATE, game_id)
                db.commit()
                db.refresh(game_db)
                record = self._to_record(game_db)
        except SQLAlchemyError:
            logger.exception("Error updating game %s", game_id)
            return None

        self.feed.poll()
        return record

    def delete_game(self, game_id: str) -> bool:
        """Remove a game's record. False if no row had this id."""
        try:
            with self.session_factory() as db:
                game_db = self._fetch_game(db, game_id)
                if game_db is None:
                    logger.warning("Cannot delete game %s: no such record", game_id)
                    return False
                db.delete(game_db)
                self.feed.record(db, ChangeType.DELETE, game_id)
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error deleting game %s", game_id)
            return False

        self.feed.poll()
        return True

    def subscribe(
        self,
        callback: ChangeCallback,
        on_error: Optional[ReadErrorCallback] = None,
        events: Optional[Iterable[ChangeType]] = None,
    ) -> Unsubscribe:
        """
        Any change to the table (optionally only the given event types) re-reads the whole table and passes it to `callback`.
        ---
        The callback always sees a consistent snapshot instead of a row level diff.
        If the re-read fails, `callback` is skipped and `on_error` is called instead.
        """
        wanted = frozenset(events) if events is not None else frozenset(ChangeType)

        def on_change(event: ChangeEvent) -> None:
            if event.type not in wanted:
                return
            games = self.fetch_games()
            if games is None:
                logger.warning("Skipping %s notification for game %s: re-read failed", event.type, event.record_id)
                if on_error is not None:
                    on_error()
                return
            callback(games)

        return self.feed.subscribe(on_change)

    def poll_changes(self) -> int:
        """Pick up changes made by other clients since the last poll."""
        return self.feed.poll()

    def close(self) -> None:
        """Sessions are opened per operation, nothing is held between calls."""

    def _fetch_game(self, db: Session, game_id: str) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return db.scalar(query)

    def _to_record(self, game_db: DBGame) -> GameRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return GameRecord(
            id=game_db.id,
            title=game_db.title,
            description=game_db.description,
            category=game_db.category,
            color=game_db.color,
            url=game_db.url,
            created_at=game_db.created_at,
            updated_at=game_db.updated_at,
        )
