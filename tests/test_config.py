from __future__ import annotations

from pathlib import Path

import pytest
from dotenv import dotenv_values
from pydantic import ValidationError

from core.config import AppSettings, get_default_session_path, write_user_env_vars


def test_defaults() -> None:
    settings = AppSettings()

    assert settings.api_base_url == "https://localhost:7053/api/"
    assert settings.notification_lifetime_seconds == 3.0
    assert settings.verify_tls is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CONSOLE_SYNC_API_BASE_URL", "https://admin.example.com/api/")
    monkeypatch.setenv("CONSOLE_SYNC_VERIFY_TLS", "false")
    monkeypatch.setenv("CONSOLE_SYNC_SESSION_PATH", str(tmp_path / "s.json"))

    settings = AppSettings()

    assert settings.api_base_url == "https://admin.example.com/api/"
    assert settings.verify_tls is False
    assert settings.resolved_session_path() == tmp_path / "s.json"


def test_project_env_file_is_read(tmp_path: Path) -> None:
    # conftest runs every test inside tmp_path
    (tmp_path / ".env").write_text("CONSOLE_SYNC_HTTP_TIMEOUT_SECONDS=5\n", encoding="utf-8")

    assert AppSettings().http_timeout_seconds == 5.0


def test_non_positive_lifetime_is_rejected() -> None:
    with pytest.raises(ValidationError):
        AppSettings(notification_lifetime_seconds=0)


def test_default_session_path_follows_xdg(tmp_path: Path) -> None:
    assert AppSettings().resolved_session_path() == get_default_session_path()
    assert get_default_session_path() == tmp_path / "xdg" / "console-sync" / "session.json"


def test_write_user_env_vars_updates_in_place(tmp_path: Path) -> None:
    env_path = tmp_path / "user.env"
    env_path.write_text("# old\nB_KEY=1\nA_KEY='x'\n", encoding="utf-8")

    write_user_env_vars({"C_KEY": "3", "B_KEY": "2", "D_KEY": None}, env_path=env_path)

    assert dotenv_values(env_path) == {"B_KEY": "2", "A_KEY": "x", "C_KEY": "3"}
    assert env_path.read_text(encoding="utf-8").startswith("# old\n")


def test_write_user_env_vars_creates_the_file(tmp_path: Path) -> None:
    env_path = write_user_env_vars({"CONSOLE_SYNC_VERIFY_TLS": "false"}, env_path=tmp_path / "cfg" / ".env")

    assert dotenv_values(env_path) == {"CONSOLE_SYNC_VERIFY_TLS": "false"}
