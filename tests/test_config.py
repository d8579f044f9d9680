from __future__ import annotations

import pytest

from saymon_datasource.config import InstanceSettings, SettingsError, load_settings


def test_instance_settings_headers_without_auth():
    settings = InstanceSettings(url="https://saymon.example.com/")

    assert settings.url == "https://saymon.example.com"
    assert settings.headers == {"Content-Type": "application/json"}
    assert settings.auth_mode == "none"
    assert settings.with_credentials is False


def test_instance_settings_headers_with_basic_auth():
    settings = InstanceSettings(url="https://saymon.example.com", basic_auth="Basic dXNlcjpwYXNz")

    assert settings.headers == {"Content-Type": "application/json", "Authorization": "Basic dXNlcjpwYXNz"}
    assert settings.auth_mode == "basic-header"


def test_instance_settings_ignores_empty_basic_auth():
    assert "Authorization" not in InstanceSettings(url="https://saymon.example.com", basic_auth="").headers


def test_instance_settings_requires_url():
    with pytest.raises(SettingsError):
        InstanceSettings(url="  ")


def test_instance_settings_are_immutable():
    settings = InstanceSettings(url="https://saymon.example.com")

    with pytest.raises(AttributeError):
        settings.url = "https://other.example.com"  # type: ignore[misc]


def test_instance_settings_from_host_mapping():
    settings = InstanceSettings.from_mapping(
        {"url": "https://saymon.example.com", "name": "prod", "basicAuth": "Basic abc", "withCredentials": True},
    )

    assert settings.name == "prod"
    assert settings.basic_auth == "Basic abc"
    assert settings.with_credentials is True


def test_load_settings_reads_secrets_file(clean_env):
    secrets_dir = clean_env / ".secrets"
    secrets_dir.mkdir()
    (secrets_dir / "secret.toml").write_text(
        '[saymon]\nurl = "https://saymon.example.com"\nbasic_auth = "Basic abc"\nwith_credentials = true\n',
        encoding="utf-8",
    )

    settings = load_settings()

    assert settings.url == "https://saymon.example.com"
    assert settings.basic_auth == "Basic abc"
    assert settings.with_credentials is True


def test_load_settings_precedence(clean_env, monkeypatch):
    path = clean_env / "saymon.toml"
    path.write_text('[saymon]\nurl = "https://file.example.com"\nhonor_time_range = false\n', encoding="utf-8")
    monkeypatch.setenv("SAYMON_URL", "https://env.example.com")
    monkeypatch.setenv("SAYMON_HONOR_TIME_RANGE", "yes")

    settings = load_settings(path)
    assert settings.url == "https://env.example.com"
    assert settings.honor_time_range is True

    overridden = load_settings(path, overrides={"url": "https://cli.example.com", "basic_auth": None})
    assert overridden.url == "https://cli.example.com"
    assert overridden.basic_auth is None


def test_load_settings_env_path(clean_env, monkeypatch):
    path = clean_env / "custom.toml"
    path.write_text('[saymon]\nurl = "https://custom.example.com"\n', encoding="utf-8")
    monkeypatch.setenv("SAYMON_SETTINGS_PATH", str(path))

    assert load_settings().url == "https://custom.example.com"


def test_load_settings_missing_url(clean_env):
    with pytest.raises(SettingsError, match="SAYMON_URL"):
        load_settings()


def test_load_settings_missing_explicit_file(clean_env):
    with pytest.raises(SettingsError, match="does not exist"):
        load_settings(clean_env / "absent.toml")
