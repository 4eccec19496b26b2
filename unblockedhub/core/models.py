"""
Boundary layer data model(s).

Both stores and the catalog service exchange the models defined here:
- GameRecord is the stored shape (wire/storage format), ids and timestamps included.
- NewGame / GameUpdate are what callers may send. Ids and timestamps are always assigned by the store.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from unblockedhub.core.exceptions import InvalidRecordError
from unblockedhub.core.shared_types import Category, ChangeType

DEFAULT_COLOR = "bg-blue-500"
STORE_MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes, even for timezone aware columns. Those are stored as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def next_timestamp(previous: datetime) -> datetime:
    """Current time, but never equal to or earlier than `previous` (updated_at must strictly increase)."""
    now = utc_now()
    previous = as_utc(previous)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class GameRecord(BaseModel):
    """A game in the catalog, as persisted by either store."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: Category
    color: str = DEFAULT_COLOR
    url: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)


class _CallerFields(BaseModel):
    """Common validation for anything a caller sends to a store."""

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def reject_store_managed_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            managed = STORE_MANAGED_FIELDS.intersection(data)
            if managed:
                raise InvalidRecordError(
                    f"{sorted(managed)} are assigned by the store and cannot be supplied."
                )
        return data

    @field_validator("title", "url", check_fields=False)
    @classmethod
    def validate_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise InvalidRecordError("Title and url must not be empty.")
        return value


class NewGame(_CallerFields):
    """Fields for a game that does not exist yet."""

    title: str
    description: str = ""
    category: Category = Category.ARCADE
    color: str = DEFAULT_COLOR
    url: str


class GameUpdate(_CallerFields):
    """Partial update: only the fields that were explicitly set are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[Category] = None
    color: Optional[str] = None
    url: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True)


@dataclass(frozen=True)
class ChangeEvent:
    """Row level change published on a table's change feed."""

    type: ChangeType
    table: str
    record_id: str
