"""Storage backends for thread checkpoints."""

from tuitionlift.storage.checkpoint_store import (
    CheckpointStore,
    FileCheckpointStore,
    InMemoryCheckpointStore,
)

__all__ = ["CheckpointStore", "FileCheckpointStore", "InMemoryCheckpointStore"]
