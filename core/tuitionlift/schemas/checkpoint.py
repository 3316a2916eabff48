"""
Checkpoint Schema - Durable per-thread snapshot for resumability.

One checkpoint per thread, overwritten after every committed node. It always
reflects the state as of the last committed node plus the pointer to the
node that runs next, so a crashed or suspended run can continue without
replaying committed work.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from tuitionlift.graph.hitl import HITLRequest
from tuitionlift.graph.state import WorkflowState

CHECKPOINT_SCHEMA_VERSION = 1


class CheckpointStatus(StrEnum):
    """Lifecycle of the run a checkpoint belongs to."""

    ACTIVE = "active"  # Mid-run (or crashed/timed out mid-run)
    SUSPENDED = "suspended"  # Waiting on a HITL decision
    COMPLETED = "completed"  # Reached End
    FAILED = "failed"  # Ended in Recovery


class Checkpoint(BaseModel):
    """
    Latest committed snapshot of a thread.

    ``next_node`` is the node to run next; for a suspended checkpoint it is
    the suspended node itself, and for a finished run it is "End".
    """

    # Identity
    thread_id: str
    run_id: str
    schema_version: int = CHECKPOINT_SCHEMA_VERSION

    # Execution state
    state: WorkflowState = Field(default_factory=WorkflowState)
    next_node: str
    status: CheckpointStatus = CheckpointStatus.ACTIVE
    execution_path: list[str] = Field(default_factory=list)  # Nodes committed in this run
    resume_from: str | None = None  # Faulted node, for failed runs

    # Suspension
    suspended: bool = False
    suspension_payload: HITLRequest | None = None

    # Run configuration snapshot
    scheduled: bool = False
    sensitive_band_mode: bool = False

    # Timestamps
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    # "ignore" so the serialized is_terminal is dropped on load
    model_config = {"extra": "ignore"}

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """True once the run reached End or Recovery."""
        return self.status in (CheckpointStatus.COMPLETED, CheckpointStatus.FAILED)

    @classmethod
    def create(
        cls,
        thread_id: str,
        run_id: str,
        state: WorkflowState,
        next_node: str,
        scheduled: bool = False,
        sensitive_band_mode: bool = False,
    ) -> "Checkpoint":
        """
        Create the first checkpoint of a run.

        Args:
            thread_id: Thread the run belongs to
            run_id: Identifier of the run
            state: Initial state
            next_node: Entry node
            scheduled: Whether the run entered at the scheduled entry point
            sensitive_band_mode: Whether SAI-band search was requested

        Returns:
            New Checkpoint instance
        """
        return cls(
            thread_id=thread_id,
            run_id=run_id,
            state=state,
            next_node=next_node,
            scheduled=scheduled,
            sensitive_band_mode=sensitive_band_mode,
        )

    def advance(
        self,
        node_id: str,
        state: WorkflowState,
        next_node: str,
        status: CheckpointStatus = CheckpointStatus.ACTIVE,
        suspension_payload: HITLRequest | None = None,
        resume_from: str | None = None,
    ) -> "Checkpoint":
        """Return the checkpoint that commits ``node_id``'s outcome."""
        path = self.execution_path
        if not (self.suspended and path and path[-1] == node_id):
            path = [*path, node_id]
        return self.model_copy(
            update={
                "state": state,
                "next_node": next_node,
                "status": status,
                "execution_path": path,
                "suspended": status == CheckpointStatus.SUSPENDED,
                "suspension_payload": suspension_payload,
                "resume_from": resume_from,
                "updated_at": datetime.now(UTC).isoformat(),
            }
        )
