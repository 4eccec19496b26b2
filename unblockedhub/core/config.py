"""Application settings, read from the environment (prefix UNBLOCKEDHUB_) or a local .env file."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORAGE_DIR = Path("~/.unblockedhub").expanduser()


class HubSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="UNBLOCKEDHUB_", env_file=".env", extra="ignore"
    )

    # ---- Remote store ----
    # No URL means no remote store: the catalog runs on the local store only.
    database_url: Optional[str] = None
    db_echo: bool = False
    # Seconds between polls of the change log for writes by other clients. 0 disables the background listener.
    feed_poll_interval_s: float = Field(default=1.0, ge=0)

    # ---- Local store ----
    local_storage_dir: Path = Field(default=DEFAULT_STORAGE_DIR)

    # ---- Logging ----
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def blank_url_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("local_storage_dir")
    @classmethod
    def expand_storage_dir(cls, value: Path) -> Path:
        return value.expanduser()
