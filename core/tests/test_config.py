"""Tests for configuration loading."""

import json

import pytest

from tuitionlift import config
from tuitionlift.config import DiscoverySettings


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "TUITIONLIFT_CONFIG_FILE", tmp_path / "configuration.json")
    for name in (
        "TAVILY_API_KEY",
        "TUITIONLIFT_STORAGE_PATH",
        "DISCOVERY_SEARCH_BATCH_DELAY_MS",
        "DISCOVERY_SEARCH_TIMEOUT_MS",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_config(tmp_path, data):
    (tmp_path / "configuration.json").write_text(json.dumps(data), encoding="utf-8")


def test_defaults():
    settings = DiscoverySettings()
    assert settings.search_batch_delay_ms == 2000
    assert settings.search_timeout_ms == 300_000
    assert settings.search_api_key is None
    assert settings.query_model is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-123")
    monkeypatch.setenv("TUITIONLIFT_STORAGE_PATH", str(tmp_path / "store"))
    monkeypatch.setenv("DISCOVERY_SEARCH_BATCH_DELAY_MS", "0")
    monkeypatch.setenv("DISCOVERY_SEARCH_TIMEOUT_MS", "1500")

    settings = DiscoverySettings()

    assert settings.search_api_key == "tvly-123"
    assert settings.search_batch_delay_ms == 0
    assert settings.search_timeout_ms == 1500
    assert settings.checkpoint_dir == tmp_path / "store" / "threads"
    assert settings.results_dir == tmp_path / "store" / "results"
    assert settings.profiles_dir == tmp_path / "store" / "profiles"


@pytest.mark.parametrize("raw", ["-5", "abc", " "])
def test_invalid_delay_falls_back(monkeypatch, raw):
    monkeypatch.setenv("DISCOVERY_SEARCH_BATCH_DELAY_MS", raw)
    assert config.get_search_batch_delay_ms() == 2000


def test_zero_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("DISCOVERY_SEARCH_TIMEOUT_MS", "0")
    assert config.get_search_timeout_ms() == 300_000


def test_config_file(monkeypatch, tmp_path):
    _write_config(
        tmp_path,
        {
            "llm": {"provider": "openai", "model": "gpt-4o-mini"},
            "search": {"api_key_env_var": "MY_SEARCH_KEY"},
            "storage_path": str(tmp_path / "configured"),
        },
    )
    monkeypatch.setenv("MY_SEARCH_KEY", "from-custom-var")

    assert config.get_query_model() == "openai/gpt-4o-mini"
    assert config.get_search_api_key() == "from-custom-var"
    assert config.get_storage_path() == tmp_path / "configured"


def test_unreadable_config_file_ignored(tmp_path):
    (tmp_path / "configuration.json").write_text("{not json", encoding="utf-8")
    assert config.get_tuitionlift_config() == {}
