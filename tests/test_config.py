from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from worklog_timer.config import AutoPauseOptions, WorklogSettings, get_settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in (
        "WORKLOG_TRACKER_URL",
        "WORKLOG_TRACKER_TOKEN",
        "WORKLOG_TRACKER_FACTORY",
        "WORKLOG_LEDGER_PATH",
        "WORKLOG_LOG_LEVEL",
        "WORKLOG_PAUSE_ON_FOCUS_LOSS",
        "WORKLOG_SLEEP_THRESHOLD_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_defaults() -> None:
    settings = WorklogSettings()

    assert settings.tracker_url == ""
    assert settings.ledger_path == Path("./.worklog/ledger.json")
    assert settings.tick_interval_ms == 1000
    assert settings.sleep_threshold_ms == 5000
    assert settings.retry_interval_seconds == 60
    assert settings.branch_cleanup_interval == 10
    assert settings.log_level == "INFO"
    assert settings.auto_pause_options() == AutoPauseOptions()
    assert not settings.has_credentials()


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKLOG_TRACKER_URL", " https://tracker.example.com/ ")
    monkeypatch.setenv("WORKLOG_TRACKER_TOKEN", "secret")
    monkeypatch.setenv("WORKLOG_PAUSE_ON_FOCUS_LOSS", "false")
    monkeypatch.setenv("WORKLOG_LOG_LEVEL", "debug")

    settings = WorklogSettings()

    assert settings.tracker_url == "https://tracker.example.com"
    assert settings.has_credentials()
    assert settings.log_level == "DEBUG"
    assert settings.auto_pause_options() == AutoPauseOptions(pause_on_focus_loss=False)


def test_yaml_file_is_read(isolated_env: Path) -> None:
    (isolated_env / "worklog.yaml").write_text(
        textwrap.dedent(
            """
            tracker_url: https://yaml.example.com
            pause_on_system_sleep: false
            retry_interval_seconds: 30
            """
        ),
        encoding="utf-8",
    )

    settings = WorklogSettings()

    assert settings.tracker_url == "https://yaml.example.com"
    assert settings.retry_interval_seconds == 30
    assert settings.auto_pause_options().pause_on_system_sleep is False


def test_environment_beats_yaml(isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (isolated_env / "worklog.yaml").write_text("tracker_url: https://yaml.example.com\n", encoding="utf-8")
    monkeypatch.setenv("WORKLOG_TRACKER_URL", "https://env.example.com")

    assert WorklogSettings().tracker_url == "https://env.example.com"


def test_blank_token_is_not_a_credential() -> None:
    settings = WorklogSettings(tracker_url="https://tracker.example.com", tracker_token="  ")

    assert not settings.has_credentials()


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "chatty"},
        {"tick_interval_ms": 0},
        {"retry_interval_seconds": -1},
        {"branch_cleanup_interval": 0},
        {"sleep_threshold_ms": 1000},
    ],
)
def test_invalid_values_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        WorklogSettings(**overrides)


def test_get_settings_resolves_ledger_path(
    isolated_env: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("WORKLOG_LEDGER_PATH", "state/ledger.json")

    settings = get_settings()

    assert settings.ledger_path == (isolated_env / "state" / "ledger.json").resolve()
    assert get_settings() is settings
