"""Shared TuitionLift configuration utilities.

Centralises reading of ~/.tuitionlift/configuration.json and the discovery
environment variables so that the CLI, the agent facade and the tests
share one implementation.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

TUITIONLIFT_CONFIG_FILE = Path.home() / ".tuitionlift" / "configuration.json"

DEFAULT_STORAGE_PATH = Path.home() / ".tuitionlift"
DEFAULT_SEARCH_BATCH_DELAY_MS = 2000
DEFAULT_SEARCH_TIMEOUT_MS = 300_000
DEFAULT_SEARCH_API_KEY_ENV_VAR = "TAVILY_API_KEY"


def get_tuitionlift_config() -> dict[str, Any]:
    """Load configuration from ~/.tuitionlift/configuration.json."""
    if not TUITIONLIFT_CONFIG_FILE.exists():
        return {}
    try:
        with open(TUITIONLIFT_CONFIG_FILE, encoding="utf-8-sig") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def get_search_batch_delay_ms() -> int:
    """Delay between consecutive search queries (DISCOVERY_SEARCH_BATCH_DELAY_MS)."""
    return _env_int("DISCOVERY_SEARCH_BATCH_DELAY_MS", DEFAULT_SEARCH_BATCH_DELAY_MS)


def get_search_timeout_ms() -> int:
    """Budget for the Search node's external call (DISCOVERY_SEARCH_TIMEOUT_MS)."""
    value = _env_int("DISCOVERY_SEARCH_TIMEOUT_MS", DEFAULT_SEARCH_TIMEOUT_MS)
    return value or DEFAULT_SEARCH_TIMEOUT_MS


def get_search_api_key() -> str | None:
    """Return the search API key from the configured environment variable."""
    search = get_tuitionlift_config().get("search", {})
    env_var = search.get("api_key_env_var") or DEFAULT_SEARCH_API_KEY_ENV_VAR
    return os.environ.get(env_var) or None


def get_storage_path() -> Path:
    """Directory holding checkpoints, results and profiles."""
    raw = os.environ.get("TUITIONLIFT_STORAGE_PATH")
    if raw:
        return Path(raw).expanduser()
    configured = get_tuitionlift_config().get("storage_path")
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_STORAGE_PATH


def get_query_model() -> str | None:
    """Return the LLM used for query generation (e.g. 'openai/gpt-4o-mini'), if configured."""
    llm = get_tuitionlift_config().get("llm", {})
    if llm.get("provider") and llm.get("model"):
        return f"{llm['provider']}/{llm['model']}"
    return None


# ---------------------------------------------------------------------------
# DiscoverySettings – shared by the CLI and the agent facade
# ---------------------------------------------------------------------------


@dataclass
class DiscoverySettings:
    """Discovery settings loaded from ~/.tuitionlift/configuration.json and the environment."""

    storage_path: Path = field(default_factory=get_storage_path)
    search_api_key: str | None = field(default_factory=get_search_api_key)
    search_batch_delay_ms: int = field(default_factory=get_search_batch_delay_ms)
    search_timeout_ms: int = field(default_factory=get_search_timeout_ms)
    query_model: str | None = field(default_factory=get_query_model)

    @property
    def checkpoint_dir(self) -> Path:
        return self.storage_path / "threads"

    @property
    def results_dir(self) -> Path:
        return self.storage_path / "results"

    @property
    def profiles_dir(self) -> Path:
        return self.storage_path / "profiles"
