"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking them
  into the CLI.
- Lets adapters (HTTP client, session store) read config consistently.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import set_key
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "console-sync"


def get_user_config_dir() -> Path:
    """Per-user config dir as Click resolves it (XDG on Linux, AppData on Windows)."""

    return Path(typer.get_app_dir(APP_NAME))


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def get_default_session_path() -> Path:
    return get_user_config_dir() / "session.json"


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Set keys in the user .env; other lines and comments are left as they are."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(exist_ok=True)
    for key in sorted(values):
        value = values[key]
        if value is not None:
            set_key(env_path, key, value, quote_mode="never")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars) without dragging parsing
      logic into the engine.
    - A single configuration contract for the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONSOLE_SYNC_",
        extra="ignore",
        case_sensitive=False,
        # Project .env first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="https://localhost:7053/api/",
        min_length=8,
        description="Base URL of the admin REST service; resource paths are relative to it.",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    verify_tls: bool = Field(
        default=True,
        description="Verify TLS certificates (disable for the local dev certificate).",
    )
    user_agent: str = Field(
        default="console-sync/0.1",
        min_length=1,
        description="User-Agent sent with every request.",
    )

    notification_lifetime_seconds: float = Field(
        default=3.0,
        gt=0,
        description="How long a status message stays visible before auto-clearing.",
    )

    session_path: Path | None = Field(
        default=None,
        description="JSON file backing the session store (token, selected organization).",
    )

    log_level: str = Field(
        default="WARNING",
        description="Root log level for the CLI (DEBUG, INFO, WARNING, ERROR).",
    )

    def resolved_session_path(self) -> Path:
        return self.session_path or get_default_session_path()
