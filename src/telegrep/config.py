"""Configuration loading for telegrep."""

from __future__ import annotations

import os
import re
import stat
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

log = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("/opt/telegrep/settings.yaml")

TOKEN_PATTERN = re.compile(r"^[0-9]+:[A-Za-z0-9_-]+$")
CHAT_ID_PATTERN = re.compile(r"^-?[0-9]+$")

# Environment variable -> config field
ENV_OVERRIDES = {
    "TELEGREP_TOKEN": "token",
    "TELEGREP_CHAT_ID": "chat_id",
    "TELEGREP_PATTERN": "pattern",
    "TELEGREP_EXCEPTIONS": "exceptions",
    "TELEGREP_LOG_FILE": "log_file",
}


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class Config(BaseModel):
    """Application configuration."""

    token: str
    chat_id: str
    pattern: str
    exceptions: str = ""
    log_file: Path = Path("/var/log/messages")
    poll_interval: float = Field(0.1, gt=0)
    flush_interval: float = Field(10.0, gt=0)
    mass_threshold: int = Field(50, gt=0)
    mass_warning_cooldown: float = Field(300.0, ge=0)

    @field_validator("token")
    @classmethod
    def token_format(cls, v: str) -> str:
        """Bot tokens look like '<digits>:<35ish url-safe chars>'."""
        if not 40 <= len(v) <= 50 or not TOKEN_PATTERN.match(v):
            raise ValueError("invalid token format")
        return v

    @field_validator("chat_id", mode="before")
    @classmethod
    def chat_id_format(cls, v: Any) -> str:
        """Chat ids are integers, negative for groups. YAML may hand us an int."""
        v = str(v)
        if len(v) > 20 or not CHAT_ID_PATTERN.match(v):
            raise ValueError("invalid chat_id format")
        return v

    @field_validator("pattern")
    @classmethod
    def pattern_compiles(cls, v: str) -> str:
        if not v:
            raise ValueError("pattern must not be empty")
        return _check_regex(v)

    @field_validator("exceptions", mode="before")
    @classmethod
    def exceptions_compile(cls, v: Any) -> str:
        if v is None or v == "":
            return ""
        return _check_regex(str(v))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Validate a raw mapping, applying environment overrides on top."""
        merged = dict(data)
        for env_var, field_name in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                merged[field_name] = value

        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(_format_validation_error(e)) from e

    @classmethod
    def from_file(cls, path: Path) -> Config:
        """Load configuration from YAML file, with env var overrides."""
        if not path.exists():
            raise ConfigError(f"Cannot open config file: {path}")

        _check_permissions(path)

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return cls.from_dict(data)


def _check_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regex '{pattern}': {e}") from e
    return pattern


def _check_permissions(path: Path) -> None:
    """Warn when the file holding the bot token is readable by others."""
    mode = stat.S_IMODE(path.stat().st_mode)
    if mode != 0o600:
        log.warning(
            "Config file permissions should be 0600",
            path=str(path),
            current=oct(mode),
        )


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(loc) for loc in err["loc"]) or "config"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration, raising ConfigError on any problem."""
    return Config.from_file(path)
