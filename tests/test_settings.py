# tests/test_settings.py
from __future__ import annotations

from typing import Iterator

import pytest

import functions.utils.settings as settings_mod


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    settings_mod.get_settings.cache_clear()
    settings_mod._load_yaml_parameters.cache_clear()
    yield
    settings_mod.get_settings.cache_clear()
    settings_mod._load_yaml_parameters.cache_clear()


def test_env_overrides_yaml_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        settings_mod,
        "_load_yaml_parameters",
        lambda: {"change_request_table": "change_request", "query_limit": 1, "max_retries": 0},
    )
    monkeypatch.setenv("CHANGE_ADAPTER_INSTANCE_URL", "https://dev12345.service-now.com")
    monkeypatch.setenv("CHANGE_ADAPTER_USERNAME", "svc_user")
    monkeypatch.setenv("CHANGE_ADAPTER_PASSWORD", "s3cret")
    monkeypatch.setenv("CHANGE_ADAPTER_MAX_RETRIES", "2")

    s = settings_mod.get_settings()

    assert str(s.instance_url).startswith("https://dev12345.service-now.com")
    assert s.username == "svc_user"
    assert s.password.get_secret_value() == "s3cret"
    assert s.max_retries == 2
    assert s.change_request_table == "change_request"


def test_missing_required_settings_fail_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings_mod, "_load_yaml_parameters", lambda: {})
    monkeypatch.delenv("CHANGE_ADAPTER_INSTANCE_URL", raising=False)
    monkeypatch.delenv("CHANGE_ADAPTER_USERNAME", raising=False)
    monkeypatch.delenv("CHANGE_ADAPTER_PASSWORD", raising=False)

    with pytest.raises(RuntimeError) as excinfo:
        settings_mod.get_settings()

    message = str(excinfo.value)
    assert "instance_url" in message
    assert "username" in message
    assert "password" in message


def test_yaml_values_used_when_env_silent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        settings_mod,
        "_load_yaml_parameters",
        lambda: {
            "instance_url": "https://yaml-instance.service-now.com",
            "username": "yaml_user",
            "adapter_id": "from-yaml",
        },
    )
    monkeypatch.delenv("CHANGE_ADAPTER_INSTANCE_URL", raising=False)
    monkeypatch.delenv("CHANGE_ADAPTER_USERNAME", raising=False)
    monkeypatch.delenv("CHANGE_ADAPTER_ADAPTER_ID", raising=False)
    monkeypatch.setenv("CHANGE_ADAPTER_PASSWORD", "pw")

    s = settings_mod.get_settings()

    assert s.username == "yaml_user"
    assert s.adapter_id == "from-yaml"
