"""
Change feed of the games table, kept in the database itself.

Writers add a `game_changes` row inside the transaction of their write. Each client follows that log
with its own cursor, so every client of the database sees every change, whichever client
(or process) made it.
"""

import threading
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from unblockedhub.core.app_logger import get_logger
from unblockedhub.core.models import ChangeEvent
from unblockedhub.core.shared_types import ChangeType
from unblockedhub.db.schema import TABLE_NAME, DBGameChange
from unblockedhub.sync.broadcast import BroadcastChannel, Message, Unsubscribe

logger = get_logger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


class SQLChangeFeed:
    """One client's view of the change log. `poll()` hands new entries to the subscribers, oldest first."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._channel = BroadcastChannel(f"{TABLE_NAME}-changes")
        self._cursor: Optional[int] = None
        self._lock = threading.RLock()

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    def record(self, db: Session, change_type: ChangeType, record_id: str) -> None:
        """Add a change entry to the pending transaction of `db`: committed together with the write, or not at all."""
        db.add(DBGameChange(change_type=change_type.value, record_id=record_id))

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        """
        Start receiving change events.
        ---
        A first subscriber starts from the end of the log: changes made before subscribing are not replayed.
        """
        with self._lock:
            if self._channel.subscriber_count == 0:
                self._cursor = self._latest_id()

        def on_message(message: Message) -> None:
            handler(message.payload)

        return self._channel.subscribe(on_message, topic=TABLE_NAME)

    def poll(self) -> int:
        """Deliver every change logged since the last poll. Returns how many were delivered."""
        with self._lock:
            if self._channel.subscriber_count == 0:
                return 0

            query = select(DBGameChange).order_by(DBGameChange.id)
            if self._cursor is not None:
                query = query.where(DBGameChange.id > self._cursor)
            try:
                with self.session_factory() as db:
                    events = [
                        (row.id, ChangeEvent(ChangeType(row.change_type), TABLE_NAME, row.record_id))
                        for row in db.scalars(query)
                    ]
            except SQLAlchemyError:
                logger.exception("Error reading the %s change log", TABLE_NAME)
                return 0

            for change_id, event in events:
                self._cursor = change_id
                self._channel.publish(TABLE_NAME, event)
            return len(events)

    def _latest_id(self) -> Optional[int]:
        try:
            with self.session_factory() as db:
                return db.scalar(select(func.max(DBGameChange.id)))
        except SQLAlchemyError:
            logger.exception("Error reading the %s change log", TABLE_NAME)
            return None
