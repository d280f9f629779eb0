"""Configuration schema using Pydantic."""

from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class ReminderConfig(BaseModel):
    """Reminder engine configuration.

    min_renotify_minutes is a fixed rate-limit window per task. It is not
    derived from any scheduling interval.
    """

    min_renotify_minutes: int = Field(default=10, ge=0)
    max_timer_delay_s: float = Field(default=24 * 60 * 60, gt=0)  # Longest single timer wait
    notification_timeout_s: float = Field(default=20, ge=0)  # 0 = leave notifications open
    title_template: str = "Reminder: {title}"
    default_body: str = "Deadline approaching"
    welcome_notification: bool = True  # Confirm once permission is granted
    auto_request_permission: bool = True  # Prompt on start() while still "default"

    @property
    def min_renotify_interval(self) -> timedelta:
        return timedelta(minutes=self.min_renotify_minutes)


class TasksConfig(BaseModel):
    """Task snapshot source configuration.

    COMPAT: extra='ignore' so snapshots written by older store exports
    with additional keys still load.
    """

    model_config = ConfigDict(extra="ignore")

    path: str = "~/.taskalarm/tasks.json"
    watch_interval_s: float = Field(default=5.0, gt=0)

    @property
    def expanded_path(self) -> Path:
        return Path(self.path).expanduser()


class ConsoleConfig(BaseModel):
    """Console notification platform configuration."""

    assume_yes: bool = False  # Grant permission without prompting


class Config(BaseSettings):
    """Root configuration for taskalarm."""

    model_config = SettingsConfigDict(
        env_prefix="TASKALARM_",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    reminders: ReminderConfig = Field(default_factory=ReminderConfig)
    tasks: TasksConfig = Field(default_factory=TasksConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment variables override values loaded from the config file."""
        return env_settings, init_settings, dotenv_settings, file_secret_settings
