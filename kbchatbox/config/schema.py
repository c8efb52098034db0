"""Configuration schema using Pydantic."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class Base(BaseModel):
    """Base model with convenient defaults."""

    model_config = ConfigDict(populate_by_name=True)


class KeybaseConfig(Base):
    """How the keybase child processes are launched."""

    binary: str = "keybase"
    listen_args: list[str] = Field(default_factory=lambda: ["chat", "api-listen"])
    api_args: list[str] = Field(default_factory=lambda: ["chat", "api"])
    login_args: list[str] = Field(default_factory=lambda: ["login"])

    @property
    def listen_command(self) -> list[str]:
        return [self.binary, *self.listen_args]

    @property
    def api_command(self) -> list[str]:
        return [self.binary, *self.api_args]

    @property
    def login_command(self) -> list[str]:
        return [self.binary, *self.login_args]


class NotificationConfig(Base):
    """Desktop notification fired for every incoming chat message."""

    enabled: bool = True
    command: str = "notify-send"
    icon: str = "mail-read"
    template: str = "Keybase: New message from {channel}"


class BridgeConfig(Base):
    """Shutdown behaviour of the bridge threads."""

    api_join_timeout: float = Field(default=5.0, ge=0)  # seconds
    # The listener blocks on a read the stop flag cannot interrupt; 0 means don't wait.
    listener_join_timeout: float = Field(default=0.0, ge=0)


class UIConfig(Base):
    """Terminal presentation settings."""

    history_size: int = Field(default=15, gt=0)  # messages fetched when a conversation is opened
    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    reply_timeout: float = Field(default=10.0, gt=0)  # seconds to wait for an API reply


class LoggingConfig(Base):
    """Log output settings."""

    level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class Config(BaseSettings):
    """Root configuration for kbchatbox."""

    keybase: KeybaseConfig = Field(default_factory=KeybaseConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_prefix="KBCHAT_", env_nested_delimiter="__")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # KBCHAT_* variables win over values read from the config file.
        return env_settings, init_settings
