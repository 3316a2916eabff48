"""Fixtures shared by the discovery tests."""

import pytest
from fakes import (
    CountingSearchClient,
    FakeQueryGenerator,
    StaticProfileLoader,
    make_financial,
    make_user,
)

from tuitionlift.agent import DiscoveryAgent
from tuitionlift.config import DiscoverySettings
from tuitionlift.discovery import InMemoryResultSink
from tuitionlift.observability.logging import clear_trace_context
from tuitionlift.storage import InMemoryCheckpointStore


@pytest.fixture(autouse=True)
def _reset_trace_context():
    clear_trace_context()
    yield
    clear_trace_context()


@pytest.fixture
def settings(tmp_path):
    return DiscoverySettings(
        storage_path=tmp_path,
        search_api_key=None,
        search_batch_delay_ms=0,
        search_timeout_ms=5000,
        query_model=None,
    )


@pytest.fixture
def make_agent(settings):
    """Build a DiscoveryAgent wired to in-memory fakes; keyword overrides replace any part."""

    def _make(**overrides) -> DiscoveryAgent:
        kwargs = {
            "settings": settings,
            "store": InMemoryCheckpointStore(),
            "profile_loader": StaticProfileLoader(make_user(), make_financial()),
            "query_generator": FakeQueryGenerator(),
            "search_client": CountingSearchClient(),
            "result_sink": InMemoryResultSink(),
        }
        kwargs.update(overrides)
        return DiscoveryAgent(**kwargs)

    return _make
