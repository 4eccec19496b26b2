"""
Type definitions used across layers
"""

from enum import StrEnum


class Category(StrEnum):
    ARCADE = "Arcade"
    PUZZLE = "Puzzle"
    MULTIPLAYER = "Multiplayer"
    ACTION = "Action"
    STRATEGY = "Strategy"
    SPORTS = "Sports"


class ChangeType(StrEnum):
    """Kind of table mutation carried by the change feed."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ConnectionStatus(StrEnum):
    CLOUD_SYNC = "Cloud Sync"
    OFFLINE = "Offline"
    LOCAL_ONLY = "Local Only"

    @classmethod
    def from_flags(cls, remote_connected: bool, is_online: bool) -> "ConnectionStatus":
        """Remote backend + online -> cloud sync. Remote backend but offline -> offline. No remote at all -> local only."""
        if not remote_connected:
            return cls.LOCAL_ONLY
        return cls.CLOUD_SYNC if is_online else cls.OFFLINE
