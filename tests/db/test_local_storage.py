"""Unit tests for unblockedhub/db/local_storage.py"""

from pathlib import Path

import pytest

from unblockedhub.db.local_storage import FileKeyValueStorage


def test_missing_key(storage: FileKeyValueStorage) -> None:
    assert storage.get("nothing") is None


def test_set_get_remove(storage: FileKeyValueStorage) -> None:
    storage.set("unblockedGames", "[]")
    assert storage.get("unblockedGames") == "[]"

    storage.set("unblockedGames", '[{"id": "1"}]')
    assert storage.get("unblockedGames") == '[{"id": "1"}]'

    storage.remove("unblockedGames")
    assert storage.get("unblockedGames") is None
    storage.remove("unblockedGames")


def test_no_temporary_files_left(storage: FileKeyValueStorage) -> None:
    storage.set("key", "value")
    assert [p.name for p in storage.directory.iterdir()] == ["key"]


def test_handles_share_values(tmp_path: Path) -> None:
    """Two handles on the same directory see each other's writes and share an identity."""
    first = FileKeyValueStorage(tmp_path / "shared")
    second = FileKeyValueStorage(tmp_path / "shared")
    first.set("key", "value")
    assert second.get("key") == "value"
    assert first.identity == second.identity


@pytest.mark.parametrize("bad_key", ["", "../escape", "a/b", "spaces here"])
def test_invalid_keys(storage: FileKeyValueStorage, bad_key: str) -> None:
    with pytest.raises(ValueError):
        storage.set(bad_key, "value")
