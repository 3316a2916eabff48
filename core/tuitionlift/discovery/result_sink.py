"""
Verified-result sinks.

Verify may run more than once for a thread (a retried failed run), so
sinks upsert by URL: persisting the same list twice leaves one copy.
"""

import asyncio
import json
import logging
from pathlib import Path

from tuitionlift.discovery.base import ResultSink
from tuitionlift.schemas.profile import DiscoveryResult
from tuitionlift.utils.io import atomic_write

logger = logging.getLogger(__name__)


class FileResultSink(ResultSink):
    """
    Upserts results into ``{base_path}/{thread_id}.json`` keyed by URL.

    Writes go through a lock per sink plus atomic replace, so concurrent
    threads never corrupt each other's files.
    """

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self._lock = asyncio.Lock()

    def path_for(self, thread_id: str) -> Path:
        return self.base_path / f"{thread_id}.json"

    async def persist(self, thread_id: str, results: list[DiscoveryResult]) -> None:
        path = self.path_for(thread_id)

        def _upsert() -> int:
            self.base_path.mkdir(parents=True, exist_ok=True)
            stored: dict[str, dict] = {}
            if path.exists():
                for item in json.loads(path.read_text(encoding="utf-8")):
                    stored[item["url"]] = item
            for result in results:
                stored[result.url] = result.model_dump(mode="json")
            with atomic_write(path) as f:
                f.write(json.dumps(list(stored.values()), indent=2))
            return len(stored)

        async with self._lock:
            total = await asyncio.to_thread(_upsert)
        logger.info(f"Persisted {len(results)} verified results ({total} stored)")

    async def load(self, thread_id: str) -> list[DiscoveryResult]:
        path = self.path_for(thread_id)

        def _read() -> list[dict]:
            if not path.exists():
                return []
            return json.loads(path.read_text(encoding="utf-8"))

        return [DiscoveryResult.model_validate(item) for item in await asyncio.to_thread(_read)]


class InMemoryResultSink(ResultSink):
    """Dictionary-backed sink for development and testing."""

    def __init__(self) -> None:
        self.results: dict[str, dict[str, DiscoveryResult]] = {}
        self.persist_calls = 0

    async def persist(self, thread_id: str, results: list[DiscoveryResult]) -> None:
        self.persist_calls += 1
        stored = self.results.setdefault(thread_id, {})
        for result in results:
            stored[result.url] = result
