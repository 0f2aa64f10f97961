"""Configuration management for the worklog timer."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


@dataclass(frozen=True, slots=True)
class AutoPauseOptions:
    """Independent toggles for each automatic pause source."""

    pause_on_focus_loss: bool = True
    pause_on_branch_change: bool = True
    pause_on_workspace_switch: bool = True
    pause_on_system_sleep: bool = True


class WorklogSettings(BaseSettings):
    """Runtime configuration sourced from environment variables, .env and worklog.yaml."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="worklog.yaml",
        extra="ignore",
    )

    tracker_url: str = Field(
        default="", validation_alias=AliasChoices("WORKLOG_TRACKER_URL", "tracker_url")
    )
    tracker_token: str | None = Field(
        default=None, validation_alias=AliasChoices("WORKLOG_TRACKER_TOKEN", "tracker_token")
    )
    tracker_factory: str | None = Field(
        default=None, validation_alias=AliasChoices("WORKLOG_TRACKER_FACTORY", "tracker_factory")
    )
    ledger_path: Path = Field(
        default=Path("./.worklog/ledger.json"),
        validation_alias=AliasChoices("WORKLOG_LEDGER_PATH", "ledger_path"),
    )
    pause_on_focus_loss: bool = Field(
        default=True,
        validation_alias=AliasChoices("WORKLOG_PAUSE_ON_FOCUS_LOSS", "pause_on_focus_loss"),
    )
    pause_on_branch_change: bool = Field(
        default=True,
        validation_alias=AliasChoices("WORKLOG_PAUSE_ON_BRANCH_CHANGE", "pause_on_branch_change"),
    )
    pause_on_workspace_switch: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "WORKLOG_PAUSE_ON_WORKSPACE_SWITCH", "pause_on_workspace_switch"
        ),
    )
    pause_on_system_sleep: bool = Field(
        default=True,
        validation_alias=AliasChoices("WORKLOG_PAUSE_ON_SYSTEM_SLEEP", "pause_on_system_sleep"),
    )
    tick_interval_ms: int = Field(
        default=1000, validation_alias=AliasChoices("WORKLOG_TICK_INTERVAL_MS", "tick_interval_ms")
    )
    sleep_threshold_ms: int = Field(
        default=5000,
        validation_alias=AliasChoices("WORKLOG_SLEEP_THRESHOLD_MS", "sleep_threshold_ms"),
    )
    retry_interval_seconds: int = Field(
        default=60,
        validation_alias=AliasChoices("WORKLOG_RETRY_INTERVAL_SECONDS", "retry_interval_seconds"),
    )
    branch_cleanup_interval: int = Field(
        default=10,
        validation_alias=AliasChoices("WORKLOG_BRANCH_CLEANUP_INTERVAL", "branch_cleanup_interval"),
    )
    workspace_id: str = Field(
        default="default", validation_alias=AliasChoices("WORKLOG_WORKSPACE_ID", "workspace_id")
    )
    log_level: str = Field(
        default="INFO", validation_alias=AliasChoices("WORKLOG_LOG_LEVEL", "log_level")
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("tracker_url")
    @classmethod
    def _normalize_tracker_url(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "WORKLOG_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("tick_interval_ms", "retry_interval_seconds")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Intervals must be positive")
        return value

    @field_validator("branch_cleanup_interval")
    @classmethod
    def _validate_cleanup_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("WORKLOG_BRANCH_CLEANUP_INTERVAL must be >= 1")
        return value

    @model_validator(mode="after")
    def _validate_sleep_threshold(self) -> WorklogSettings:
        if self.sleep_threshold_ms <= self.tick_interval_ms:
            raise ValueError("WORKLOG_SLEEP_THRESHOLD_MS must exceed the tick interval")
        return self

    def has_credentials(self) -> bool:
        return bool(self.tracker_url) and bool((self.tracker_token or "").strip())

    def auto_pause_options(self) -> AutoPauseOptions:
        return AutoPauseOptions(
            pause_on_focus_loss=self.pause_on_focus_loss,
            pause_on_branch_change=self.pause_on_branch_change,
            pause_on_workspace_switch=self.pause_on_workspace_switch,
            pause_on_system_sleep=self.pause_on_system_sleep,
        )


@lru_cache(maxsize=1)
def get_settings() -> WorklogSettings:
    """Return cached settings instance."""

    settings = WorklogSettings()
    settings.ledger_path = settings.ledger_path.expanduser().resolve()
    return settings


__all__ = ["AutoPauseOptions", "WorklogSettings", "get_settings"]
