"""Run configuration handed explicitly to every node."""

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tuitionlift.config import DiscoverySettings

DEFAULT_SEARCH_BATCH_DELAY_MS = 2000
DEFAULT_SEARCH_TIMEOUT_MS = 300_000


def thread_id_for_user(user_id: str) -> str:
    """Deterministic thread identity for a user's discovery lineage."""
    return f"user_{user_id}"


@dataclass(frozen=True)
class RunConfig:
    """
    Per-invocation configuration.

    Attributes:
        thread_id: Checkpoint lineage key
        run_id: Identifier of this run (stamped onto discovery results)
        sensitive_band_mode: Request an SAI-band search (gated by user approval)
        scheduled: Enter at Prioritize and skip Search/Verify
        search_batch_delay_ms: Pause between consecutive search queries
        search_timeout_ms: Budget for the Search node's external call
        timeout_seconds: Overall wall-clock budget for one invoke/resume
    """

    thread_id: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    sensitive_band_mode: bool = False
    scheduled: bool = False
    search_batch_delay_ms: int = DEFAULT_SEARCH_BATCH_DELAY_MS
    search_timeout_ms: int = DEFAULT_SEARCH_TIMEOUT_MS
    timeout_seconds: float | None = None

    @classmethod
    def for_user(cls, user_id: str, **kwargs) -> "RunConfig":
        return cls(thread_id=thread_id_for_user(user_id), **kwargs)

    @classmethod
    def from_settings(
        cls, thread_id: str, settings: "DiscoverySettings", **kwargs
    ) -> "RunConfig":
        """Copy pacing values from settings so nodes never read the environment."""
        kwargs.setdefault("search_batch_delay_ms", settings.search_batch_delay_ms)
        kwargs.setdefault("search_timeout_ms", settings.search_timeout_ms)
        return cls(thread_id=thread_id, **kwargs)
