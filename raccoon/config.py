"""Configuration management with Pydantic Settings + TOML or YAML files."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from raccoon.errors import ConfigError
from raccoon.utils.platform import config_search_path
from raccoon.webhooks.models import EventKind

CONFIG_FILENAMES = ("raccoon.toml", "raccoon.yaml", "raccoon.yml")


class WebhookConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    secret: str
    path: str = "/gitlab"
    signature_scheme: Literal["hmac", "token"] = "hmac"
    # False: unsupported kinds get 400 instead of 200
    accept_unsupported: bool = True

    @field_validator("secret")
    @classmethod
    def _secret_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("webhook secret must not be empty")
        return value

    @field_validator("path")
    @classmethod
    def _absolute_path(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"


class ChannelConfig(BaseModel):
    """An IRC channel to join, its optional key, and the events it wants."""

    model_config = ConfigDict(frozen=True)

    name: str
    key: str | None = None
    events: tuple[EventKind, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        # "#chan" or "#chan:key"
        if isinstance(data, str):
            name, _, key = data.partition(":")
            return {"name": name, "key": key or None}
        return data

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        value = value.strip()
        if not value or " " in value or "," in value:
            raise ValueError(f"invalid channel name: {value!r}")
        if value[0] not in "#&+!":
            value = f"#{value}"
        return value

    def accepts(self, kind: EventKind) -> bool:
        return not self.events or kind in self.events


class BackoffConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial: float = Field(default=1.0, gt=0)
    maximum: float = Field(default=300.0, gt=0)
    factor: float = Field(default=2.0, ge=1.0)


class FloodConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    burst: int = Field(default=4, ge=1)
    interval: float = Field(default=1.0, ge=0)


class IrcConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    nickname: str
    nick_password: str = ""
    server_password: str = ""
    server: str
    port: int = Field(default=6697, ge=1, le=65535)
    channels: tuple[ChannelConfig, ...]
    username: str = ""
    realname: str = "Raccoon"
    connect_timeout: float = Field(default=30.0, gt=0)
    register_timeout: float = Field(default=60.0, gt=0)
    join_timeout: float = Field(default=30.0, gt=0)
    write_timeout: float = Field(default=10.0, gt=0)
    ping_interval: float = Field(default=120.0, gt=0)
    ping_timeout: float = Field(default=60.0, gt=0)
    max_nick_retries: int = Field(default=3, ge=0)
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)
    flood: FloodConfig = Field(default_factory=FloodConfig)

    @field_validator("nickname", "server")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("channels")
    @classmethod
    def _has_channels(cls, value: tuple[ChannelConfig, ...]) -> tuple[ChannelConfig, ...]:
        if not value:
            raise ValueError("at least one channel is required")
        return value


class ServiceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    bind: str = "127.0.0.1"
    port: int = Field(default=7878, ge=1, le=65535)


class QueueConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_size: int = Field(default=256, ge=1)


class FormatConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_commit_lines: int = Field(default=0, ge=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RACCOON_",
        env_nested_delimiter="__",
        case_sensitive=False,
        frozen=True,
    )

    webhook: WebhookConfig
    irc: IrcConfig
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    format: FormatConfig = Field(default_factory=FormatConfig)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values come in as init kwargs; env vars override them
        return env_settings, init_settings, file_secret_settings


def find_config_file(search_path: list[Path] | None = None) -> Path | None:
    """Return the first config file found along the search path."""
    for directory in search_path if search_path is not None else config_search_path():
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        if path.suffix in (".yaml", ".yml"):
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to parse config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a table at the top level")
    return data


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a config file, letting RACCOON_* env vars override it."""
    if config_path is None:
        config_path = os.environ.get("RACCOON_CONFIG")

    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"config file {path} does not exist")
        data = read_config_file(path)
    else:
        found = find_config_file()
        if found is not None:
            data = read_config_file(found)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
