"""Database tables / schema"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from unblockedhub.core.models import DEFAULT_COLOR, utc_now
from unblockedhub.core.shared_types import Category

TABLE_NAME = "games"
CHANGES_TABLE_NAME = "game_changes"


def new_game_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    __tablename__ = TABLE_NAME
    __table_args__ = (
        Index("games_category_idx", "category"),
        Index("games_created_at_idx", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_game_id)
    title: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(32), default=Category.ARCADE.value)
    color: Mapped[str] = mapped_column(String(64), default=DEFAULT_COLOR)
    url: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class DBGameChange(Base):
    """Change log of the games table. Every write adds a row in the same transaction; clients follow it by id."""

    __tablename__ = CHANGES_TABLE_NAME

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    change_type: Mapped[str] = mapped_column(String(8))
    record_id: Mapped[str] = mapped_column(String(36))
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
