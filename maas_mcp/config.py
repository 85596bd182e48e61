"""
Runtime configuration.

Settings are read once at startup from, lowest to highest precedence:
  1. model defaults
  2. a YAML file (``path`` argument or the MAAS_MCP_CONFIG env var)
  3. environment variables

Environment variables:
  MAAS_API_URL=http://maas:5240/MAAS    MAAS endpoint (required)
  MAAS_API_KEY=consumer:token:secret    MAAS API key (required)
  LOG_LEVEL=info                        debug | info | warning | error
  CACHE_ENABLED=true                    global cache switch
  CACHE_STRATEGY=time-based             time-based | lru
  CACHE_MAX_SIZE=1000                   entries kept before eviction
  CACHE_MAX_AGE=300                     default TTL in seconds
  CACHE_RESOURCE_SPECIFIC_TTL='{"Machine": 60}'
  AUDIT_LOG_ENABLED=true
  AUDIT_LOG_SENSITIVE_FIELDS=password,token,secret,key,credential
  MAAS_REQUEST_TIMEOUT=30               per-request timeout in seconds
  MAAS_MAX_RETRIES=3
  MAAS_MCP_READ_ONLY=false              hide the mutating cache tools
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from maas_mcp.audit import DEFAULT_SENSITIVE_FIELDS


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or fails validation."""


_TRUE = ("1", "true", "yes")

# env var -> settings field
_ENV_FIELDS = {
    "MAAS_API_URL": "maas_api_url",
    "MAAS_API_KEY": "maas_api_key",
    "LOG_LEVEL": "log_level",
    "CACHE_ENABLED": "cache_enabled",
    "CACHE_STRATEGY": "cache_strategy",
    "CACHE_MAX_SIZE": "cache_max_size",
    "CACHE_MAX_AGE": "cache_max_age",
    "CACHE_RESOURCE_SPECIFIC_TTL": "cache_resource_ttl",
    "AUDIT_LOG_ENABLED": "audit_log_enabled",
    "AUDIT_LOG_SENSITIVE_FIELDS": "audit_log_sensitive_fields",
    "MAAS_REQUEST_TIMEOUT": "request_timeout",
    "MAAS_MAX_RETRIES": "max_retries",
    "MAAS_MCP_READ_ONLY": "read_only",
}

_BOOL_FIELDS = {"cache_enabled", "audit_log_enabled", "read_only"}


class Settings(BaseModel):
    maas_api_url: str
    maas_api_key: str
    log_level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    cache_enabled: bool = True
    cache_strategy: Literal["time-based", "lru"] = "time-based"
    cache_max_size: int = Field(default=1000, gt=0)
    cache_max_age: int = Field(default=300, ge=0)
    cache_resource_ttl: dict[str, int] = Field(default_factory=dict)
    audit_log_enabled: bool = True
    audit_log_sensitive_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_SENSITIVE_FIELDS))
    request_timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    read_only: bool = False

    @field_validator("maas_api_url")
    @classmethod
    def check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("MAAS API URL must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("maas_api_key")
    @classmethod
    def check_api_key(cls, value: str) -> str:
        parts = value.split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError("MAAS API key must have the form consumer_key:token_key:token_secret")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def lower_level(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("audit_log_sensitive_fields", mode="before")
    @classmethod
    def split_fields(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [f.strip() for f in value.split(",") if f.strip()]
        return value


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for var, name in _ENV_FIELDS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        if name in _BOOL_FIELDS:
            values[name] = raw.strip().lower() in _TRUE
        elif name == "cache_resource_ttl":
            try:
                values[name] = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ConfigError(f"{var} must be a JSON object: {e}") from e
        else:
            values[name] = raw
    return values


def load_settings(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}

    config_path = path or env.get("MAAS_MCP_CONFIG")
    if config_path:
        raw.update(_read_yaml(Path(config_path)))
    raw.update(_from_env(env))

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
