"""Unit tests for unblockedhub/db/local_repository.py"""

import json
from unittest.mock import Mock

from unblockedhub.core.models import GameRecord, GameUpdate, NewGame
from unblockedhub.db.local_repository import GAMES_KEY, UPDATE_TOPIC, LocalGameStore
from unblockedhub.db.local_storage import FileKeyValueStorage
from unblockedhub.sync.broadcast import BroadcastChannel, Message


def test_ids_are_timestamps(local_store: LocalGameStore, maze: NewGame) -> None:
    first = local_store.create_game(maze)
    second = local_store.create_game(maze)
    assert first is not None and second is not None
    assert first.id.isdigit() and second.id.isdigit()
    assert int(second.id) > int(first.id)


def test_ids_unique_across_tabs(
    local_store: LocalGameStore, other_local_store: LocalGameStore, maze: NewGame
) -> None:
    ids = set()
    for _ in range(3):
        ids.add(local_store.create_game(maze).id)  # type: ignore[union-attr]
        ids.add(other_local_store.create_game(maze).id)  # type: ignore[union-attr]
    assert len(ids) == 6


def test_storage_format(
    local_store: LocalGameStore, storage: FileKeyValueStorage, maze: NewGame
) -> None:
    """One serialized list under one key, timestamps as ISO-8601 strings."""
    created = local_store.create_game(maze)
    assert created is not None

    raw = storage.get(GAMES_KEY)
    assert raw is not None
    [stored] = json.loads(raw)
    assert set(stored) == {
        "id", "title", "description", "category", "color", "url", "created_at", "updated_at"
    }
    assert stored["id"] == created.id
    assert stored["category"] == "Puzzle"
    assert GameRecord.model_validate(stored).created_at == created.created_at


def test_delete_unknown_game(local_store: LocalGameStore, maze: NewGame) -> None:
    """The local store reports success even when nothing matched."""
    local_store.create_game(maze)
    assert local_store.delete_game("does-not-exist") is True
    assert len(local_store.list_games()) == 1


def test_writer_does_not_hear_itself(
    local_store: LocalGameStore, other_local_store: LocalGameStore, maze: NewGame
) -> None:
    """Same behaviour as storage events: only other tabs get notified."""
    mine: list[list[GameRecord]] = []
    theirs: list[list[GameRecord]] = []
    local_store.subscribe(mine.append)
    other_local_store.subscribe(theirs.append)

    created = local_store.create_game(maze)

    assert mine == []
    assert theirs == [[created]]


def test_every_mutation_broadcasts(
    local_store: LocalGameStore, local_channel: BroadcastChannel, maze: NewGame
) -> None:
    messages: list[Message] = []
    local_channel.subscribe(messages.append)

    created = local_store.create_game(maze)
    assert created is not None
    local_store.update_game(created.id, GameUpdate(title="X"))
    local_store.delete_game(created.id)

    assert [m.topic for m in messages] == [UPDATE_TOPIC] * 3
    assert {m.sender for m in messages} == {local_store.client_id}


def test_update_rejected_fields_leave_storage_untouched(
    local_store: LocalGameStore, storage: FileKeyValueStorage, maze: NewGame
) -> None:
    local_store.create_game(maze)
    before = storage.get(GAMES_KEY)
    assert local_store.update_game("does-not-exist", GameUpdate(title="X")) is None
    assert storage.get(GAMES_KEY) == before


def test_corrupt_storage(
    local_store: LocalGameStore, storage: FileKeyValueStorage, maze: NewGame
) -> None:
    """Unreadable data: reads degrade, writes fail instead of overwriting it."""
    storage.set(GAMES_KEY, "{not json")

    assert local_store.list_games() == []
    assert local_store.fetch_games() is None
    assert local_store.create_game(maze) is None
    assert storage.get(GAMES_KEY) == "{not json"


def test_write_failure(local_channel: BroadcastChannel, maze: NewGame) -> None:
    storage = Mock()
    storage.get.return_value = None
    storage.set.side_effect = OSError("disk full")
    messages: list[Message] = []
    local_channel.subscribe(messages.append)

    store = LocalGameStore(storage, local_channel)
    assert store.create_game(maze) is None
    assert store.delete_game("some-id") is False
    assert messages == []


def test_failed_re_read_keeps_callback_quiet(
    local_store: LocalGameStore,
    other_local_store: LocalGameStore,
    storage: FileKeyValueStorage,
    maze: NewGame,
) -> None:
    """A broadcast whose fresh collection cannot be read is reported through on_error, never as an empty collection."""
    received: list[list[GameRecord]] = []
    errors: list[str] = []
    local_store.subscribe(received.append, on_error=lambda: errors.append("read failed"))
    created = other_local_store.create_game(maze)
    assert received == [[created]]

    broken = Mock()
    broken.get.side_effect = OSError("permission denied")
    local_store.storage = broken
    other_local_store.create_game(maze)

    assert received == [[created]]
    assert errors == ["read failed"]


def test_nothing_to_poll(local_store: LocalGameStore) -> None:
    assert local_store.poll_changes() == 0
