"""
Checkpoint Store - Durable per-thread checkpoint persistence.

Each thread owns exactly one checkpoint, overwritten after every committed
node. ``save`` returns only once the checkpoint is on stable storage; any
failure surfaces as ``CheckpointWriteError`` and is fatal to the run.

An execution must ``claim`` a thread before touching its checkpoint. A
claim held elsewhere (another executor, another process) is rejected with
``ThreadBusyError``.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

from filelock import FileLock, Timeout
from pydantic import ValidationError

from tuitionlift.errors import (
    CheckpointReadError,
    CheckpointWriteError,
    InvalidThreadIdError,
    ThreadBusyError,
)
from tuitionlift.schemas.checkpoint import Checkpoint
from tuitionlift.utils.io import atomic_write

logger = logging.getLogger(__name__)

_THREAD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,200}$")


def _check_thread_id(thread_id: str) -> None:
    # Thread ids become file names
    if not _THREAD_ID_PATTERN.match(thread_id) or thread_id in (".", ".."):
        raise InvalidThreadIdError(thread_id)


class CheckpointStore(ABC):
    """Abstract interface for persisting thread checkpoints."""

    @abstractmethod
    async def setup(self) -> None:
        """Create backing storage. Idempotent; safe on every process start."""
        ...

    @abstractmethod
    def claim(self, thread_id: str) -> AbstractAsyncContextManager[None]:
        """
        Take exclusive ownership of a thread for one invoke or resume.

        Raises:
            ThreadBusyError: Another execution holds the thread
        """
        ...

    @abstractmethod
    async def save(self, checkpoint: Checkpoint) -> None:
        """Durably replace the thread's checkpoint."""
        ...

    @abstractmethod
    async def load(self, thread_id: str) -> Checkpoint | None:
        """Return the last committed checkpoint, or ``None`` for an unseen thread."""
        ...

    @abstractmethod
    async def delete(self, thread_id: str) -> bool:
        """Remove a thread's checkpoint. Returns False if there was none."""
        ...

    @abstractmethod
    async def list_threads(self) -> list[str]:
        """Thread ids that currently have a checkpoint."""
        ...


class FileCheckpointStore(CheckpointStore):
    """
    Stores one JSON file per thread using atomic writes.

    Directory structure:
        {base_path}/
            user_42.json
            user_42.lock     (OS file lock held while a run owns the thread)
            user_43.json
    """

    def __init__(self, base_path: Path, lock_timeout: float = 0.0):
        """
        Initialize checkpoint store.

        Args:
            base_path: Directory holding checkpoint files (e.g. ~/.tuitionlift/threads/)
            lock_timeout: Seconds to wait for a busy thread before rejecting
                (0 rejects immediately)
        """
        self.base_path = Path(base_path)
        self.lock_timeout = lock_timeout

    def _path(self, thread_id: str) -> Path:
        _check_thread_id(thread_id)
        return self.base_path / f"{thread_id}.json"

    async def setup(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    @asynccontextmanager
    async def claim(self, thread_id: str) -> AsyncIterator[None]:
        """
        Hold ``{thread_id}.lock`` for the duration of the block.

        The OS releases the lock if the process dies, so a crashed run
        never leaves its thread stuck.

        Raises:
            ThreadBusyError: The lock is held by another execution
        """
        _check_thread_id(thread_id)
        lock = FileLock(self.base_path / f"{thread_id}.lock", thread_local=False)

        def _acquire() -> None:
            self.base_path.mkdir(parents=True, exist_ok=True)
            lock.acquire(timeout=self.lock_timeout)

        try:
            await asyncio.to_thread(_acquire)
        except Timeout as e:
            logger.warning(f"Thread {thread_id} is owned by another execution")
            raise ThreadBusyError(thread_id) from e

        try:
            yield
        finally:
            lock.release()

    async def save(self, checkpoint: Checkpoint) -> None:
        """
        Atomically replace the thread's checkpoint.

        Uses temp file + fsync + rename, so readers see either the previous
        checkpoint or the new one, never a partial write.

        Raises:
            CheckpointWriteError: If the write could not be made durable
        """
        path = self._path(checkpoint.thread_id)
        payload = checkpoint.model_dump_json(indent=2)

        def _write():
            self.base_path.mkdir(parents=True, exist_ok=True)
            with atomic_write(path) as f:
                f.write(payload)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to save checkpoint for {checkpoint.thread_id}: {e}")
            raise CheckpointWriteError(checkpoint.thread_id, e) from e

        logger.debug(
            f"Saved checkpoint for {checkpoint.thread_id} "
            f"(next={checkpoint.next_node}, status={checkpoint.status})"
        )

    async def load(self, thread_id: str) -> Checkpoint | None:
        """
        Load the thread's checkpoint.

        Raises:
            CheckpointReadError: If the file exists but cannot be parsed
        """
        path = self._path(thread_id)

        def _read() -> str | None:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        raw = await asyncio.to_thread(_read)
        if raw is None:
            return None

        try:
            return Checkpoint.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Failed to load checkpoint for {thread_id}: {e}")
            raise CheckpointReadError(thread_id, e) from e

    async def delete(self, thread_id: str) -> bool:
        path = self._path(thread_id)

        def _delete() -> bool:
            if not path.exists():
                return False
            path.unlink()
            return True

        deleted = await asyncio.to_thread(_delete)
        if deleted:
            logger.info(f"Deleted checkpoint for {thread_id}")
        return deleted

    async def list_threads(self) -> list[str]:
        def _list() -> list[str]:
            if not self.base_path.exists():
                return []
            return sorted(p.stem for p in self.base_path.glob("*.json"))

        return await asyncio.to_thread(_list)

    async def prune(self, max_age_days: int = 30) -> int:
        """
        Delete checkpoints of finished runs not updated for ``max_age_days``.

        Suspended and active threads are kept regardless of age; a suspended
        run may legitimately wait indefinitely.

        Args:
            max_age_days: Maximum age in days (default 30)

        Returns:
            Number of checkpoints deleted
        """
        cutoff = datetime.now(UTC) - timedelta(days=max_age_days)
        deleted_count = 0

        for thread_id in await self.list_threads():
            try:
                async with self.claim(thread_id):
                    if await self._is_stale(thread_id, cutoff) and await self.delete(thread_id):
                        deleted_count += 1
            except ThreadBusyError:
                # Owned by a running execution
                continue

        if deleted_count > 0:
            logger.info(f"Pruned {deleted_count} checkpoints older than {max_age_days} days")

        return deleted_count

    async def _is_stale(self, thread_id: str, cutoff: datetime) -> bool:
        try:
            checkpoint = await self.load(thread_id)
        except CheckpointReadError:
            return False
        if checkpoint is None or not checkpoint.is_terminal:
            return False
        try:
            updated = datetime.fromisoformat(checkpoint.updated_at)
        except ValueError as e:
            logger.warning(f"Failed to parse timestamp for {thread_id}: {e}")
            return False
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=UTC)
        return updated < cutoff


class InMemoryCheckpointStore(CheckpointStore):
    """Dictionary-backed checkpoint store for development and testing.

    Stores serialized JSON so callers never share objects with the store.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._claimed: set[str] = set()
        self.save_count = 0

    async def setup(self) -> None:
        return None

    @asynccontextmanager
    async def claim(self, thread_id: str) -> AsyncIterator[None]:
        _check_thread_id(thread_id)
        if thread_id in self._claimed:
            raise ThreadBusyError(thread_id)
        self._claimed.add(thread_id)
        try:
            yield
        finally:
            self._claimed.discard(thread_id)

    async def save(self, checkpoint: Checkpoint) -> None:
        self._data[checkpoint.thread_id] = checkpoint.model_dump_json()
        self.save_count += 1

    async def load(self, thread_id: str) -> Checkpoint | None:
        raw = self._data.get(thread_id)
        return Checkpoint.model_validate_json(raw) if raw is not None else None

    async def delete(self, thread_id: str) -> bool:
        return self._data.pop(thread_id, None) is not None

    async def list_threads(self) -> list[str]:
        return sorted(self._data)

    def raw(self, thread_id: str) -> dict | None:
        """Stored JSON document, for assertions in tests."""
        raw = self._data.get(thread_id)
        return json.loads(raw) if raw is not None else None
