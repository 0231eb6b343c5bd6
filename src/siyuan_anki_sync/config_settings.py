"""Settings model for the sync service."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .error_codes import ErrorCode
from .exceptions import ConfigurationError


class Config(BaseSettings):
    """Service configuration using pydantic-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # SiYuan kernel
    siyuan_host: str = Field(default="127.0.0.1", description="SiYuan kernel host")
    siyuan_port: int = Field(default=6806, ge=1, le=65535, description="SiYuan port")

    # AnkiConnect
    anki_host: str = Field(default="127.0.0.1", description="AnkiConnect host")
    anki_port: int = Field(default=8765, ge=1, le=65535, description="AnkiConnect port")
    anki_model: str = Field(
        default="siyuan", min_length=1, description="Anki note type used for cards"
    )
    root_deck_name: str = Field(
        default="SiYuan", min_length=1, description="Top-level Anki deck for synced cards"
    )
    preserve_decks: list[str] = Field(
        default_factory=lambda: ["Default"],
        description="Decks that are never deleted during cleanup",
    )

    # Source selection and content
    flashcard_attribute: str = Field(
        default="custom-riff-decks",
        min_length=1,
        description="Block attribute that marks a block as a flashcard",
    )
    deep_link_scheme: str = Field(
        default="siyuan",
        pattern=r"^[a-zA-Z][a-zA-Z0-9+.-]*$",
        description="URL scheme for block deep links in rendered cards",
    )
    query_limit: int = Field(
        default=10000, ge=1, description="Maximum number of flashcard blocks per query"
    )
    back_from_parent: bool = Field(
        default=False,
        description="Use the enclosing list, blockquote or super block as the card back",
    )

    # Runtime
    sync_mode: Literal["manual", "interval"] = Field(
        default="manual", description="Run mode: 'manual' or 'interval'"
    )
    sync_interval_minutes: int = Field(
        default=30, ge=1, description="Minutes between runs in interval mode"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="Per-request HTTP timeout in seconds"
    )
    notify_timeout_ms: int = Field(
        default=5000, ge=0, description="How long SiYuan shows the completion message"
    )
    force_update: bool = Field(
        default=False,
        description="Treat every record present on both sides as stale",
    )

    # Storage and logging
    data_dir: Path = Field(
        default=Path(), description="Directory for the sync state file and logs"
    )
    log_level: str = Field(default="INFO", description="Log level")
    log_dir: Path | None = Field(
        default=Path("logs"),
        description="Log directory (relative to data_dir); console only when empty",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def parse_data_dir(cls, v: Any) -> Path:
        """Convert string to Path."""
        if v is None:
            return Path()
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        msg = f"data_dir must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("log_dir", mode="before")
    @classmethod
    def parse_log_dir(cls, v: Any) -> Path | None:
        """Empty values disable file logging."""
        if v is None or v == "":
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        msg = f"log_dir must be string, Path or empty, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("preserve_decks", mode="before")
    @classmethod
    def parse_preserve_decks(cls, v: Any) -> list[str]:
        """Accept a comma-separated string from the environment."""
        if v is None:
            return []
        if isinstance(v, str):
            return [d.strip() for d in v.split(",") if d.strip()]
        return list(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return level

    @property
    def siyuan_url(self) -> str:
        """Base URL of the SiYuan kernel (also used for asset links)."""
        return f"http://{self.siyuan_host}:{self.siyuan_port}"

    @property
    def anki_url(self) -> str:
        """AnkiConnect endpoint URL."""
        return f"http://{self.anki_host}:{self.anki_port}"

    @property
    def state_path(self) -> Path:
        """Location of the last-sync state file."""
        return self.data_dir / ".sync_state.json"

    def get_log_dir(self) -> Path | None:
        """Resolve the log directory relative to data_dir."""
        if self.log_dir is None:
            return None
        if self.log_dir.is_absolute():
            return self.log_dir
        return self.data_dir / self.log_dir

    def validate_config(self) -> None:
        """Cross-field validation that single-field validators cannot express."""
        if self.siyuan_url == self.anki_url:
            msg = f"SiYuan and AnkiConnect point at the same address: {self.anki_url}"
            raise ConfigurationError(
                msg,
                suggestion="Check siyuan_port (default 6806) and anki_port (default 8765)",
                error_code=ErrorCode.CFG_INVALID.value,
            )
        if self.root_deck_name.startswith("::") or self.root_deck_name.endswith("::"):
            msg = f"Root deck name has an empty path segment: {self.root_deck_name!r}"
            raise ConfigurationError(msg, error_code=ErrorCode.CFG_INVALID.value)
