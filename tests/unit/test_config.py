"""
Unit tests for maas_mcp/config.py.
"""

from __future__ import annotations

import pytest

from maas_mcp.config import ConfigError, load_settings

BASE_ENV = {
    "MAAS_API_URL": "http://maas.example.com:5240/MAAS/",
    "MAAS_API_KEY": "ck:tk:ts",
}


def test_defaults():
    settings = load_settings(environ=BASE_ENV)
    assert settings.maas_api_url == "http://maas.example.com:5240/MAAS"
    assert settings.cache_enabled is True
    assert settings.cache_strategy == "time-based"
    assert settings.cache_max_size == 1000
    assert settings.cache_max_age == 300
    assert settings.request_timeout == 30
    assert settings.max_retries == 3
    assert settings.read_only is False
    assert "password" in settings.audit_log_sensitive_fields


def test_env_overrides():
    settings = load_settings(
        environ={
            **BASE_ENV,
            "LOG_LEVEL": "DEBUG",
            "CACHE_ENABLED": "no",
            "CACHE_STRATEGY": "lru",
            "CACHE_MAX_SIZE": "50",
            "CACHE_RESOURCE_SPECIFIC_TTL": '{"Machine": 10}',
            "AUDIT_LOG_SENSITIVE_FIELDS": "password, apikey",
            "MAAS_MCP_READ_ONLY": "Yes",
        }
    )
    assert settings.log_level == "debug"
    assert settings.cache_enabled is False
    assert settings.cache_strategy == "lru"
    assert settings.cache_max_size == 50
    assert settings.cache_resource_ttl == {"Machine": 10}
    assert settings.audit_log_sensitive_fields == ["password", "apikey"]
    assert settings.read_only is True


def test_yaml_file_then_env(tmp_path):
    path = tmp_path / "maas.yaml"
    path.write_text(
        "maas_api_url: http://from-file:5240/MAAS\n"
        "maas_api_key: a:b:c\n"
        "cache_max_age: 120\n"
        "cache_resource_ttl:\n"
        "  Machines: 15\n"
    )
    settings = load_settings(environ={"MAAS_MCP_CONFIG": str(path), "CACHE_MAX_AGE": "90"})
    assert settings.maas_api_url == "http://from-file:5240/MAAS"
    assert settings.cache_max_age == 90
    assert settings.cache_resource_ttl == {"Machines": 15}


def test_missing_required_settings():
    with pytest.raises(ConfigError):
        load_settings(environ={})


@pytest.mark.parametrize(
    "env",
    [
        {**BASE_ENV, "MAAS_API_KEY": "not-a-key"},
        {**BASE_ENV, "MAAS_API_URL": "ftp://maas"},
        {**BASE_ENV, "CACHE_STRATEGY": "random"},
        {**BASE_ENV, "CACHE_MAX_SIZE": "0"},
        {**BASE_ENV, "CACHE_RESOURCE_SPECIFIC_TTL": "{broken"},
    ],
)
def test_invalid_settings(env):
    with pytest.raises(ConfigError):
        load_settings(environ=env)


def test_bad_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        load_settings(path, environ=BASE_ENV)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "absent.yaml", environ=BASE_ENV)
