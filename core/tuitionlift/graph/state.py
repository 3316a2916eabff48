"""
Workflow State - Typed run data with per-field merge rules.

Nodes never mutate state. They return a partial update (a dict keyed by
field name) and ``merge`` folds it into a new ``WorkflowState`` using the
``REDUCERS`` table:

    overwrite  - the update replaces the current value
    append     - the update (a list) is appended; the field never shrinks

The table is checked against the model fields at import time, so adding a
field without deciding its merge rule fails loudly.
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tuitionlift.errors import StateUpdateError
from tuitionlift.schemas.profile import (
    ActiveMilestone,
    DiscoveryResult,
    ErrorLogEntry,
    FinancialProfile,
    Message,
    UserProfile,
)


class WorkflowState(BaseModel):
    """Accumulated data for one discovery run."""

    user_profile: UserProfile | None = None
    financial_profile: FinancialProfile | None = None
    discovery_results: list[DiscoveryResult] = Field(default_factory=list)
    active_milestones: list[ActiveMilestone] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    error_log: list[ErrorLogEntry] = Field(default_factory=list)
    last_active_node: str | None = None
    pending_confirmation: bool = False
    sai_range_approved: bool | None = None  # None = not asked yet

    model_config = ConfigDict(frozen=True, extra="forbid")


def overwrite(current: Any, update: Any) -> Any:
    return update


def append(current: list, update: Any) -> list:
    if not isinstance(update, list | tuple):
        raise StateUpdateError(f"append-only field expects a list, got {type(update).__name__}")
    return [*current, *update]


Reducer = Callable[[Any, Any], Any]

REDUCERS: dict[str, Reducer] = {
    "user_profile": overwrite,
    "financial_profile": overwrite,
    "discovery_results": overwrite,
    "active_milestones": overwrite,
    "messages": append,
    "error_log": append,
    "last_active_node": overwrite,
    "pending_confirmation": overwrite,
    "sai_range_approved": overwrite,
}

APPEND_ONLY_FIELDS = frozenset(name for name, fn in REDUCERS.items() if fn is append)


def _check_reducer_table() -> None:
    declared = set(WorkflowState.model_fields)
    missing = declared - REDUCERS.keys()
    extra = REDUCERS.keys() - declared
    if missing or extra:
        raise RuntimeError(
            f"Reducer table out of sync with WorkflowState "
            f"(missing={sorted(missing)}, unknown={sorted(extra)})"
        )


_check_reducer_table()


def merge(state: WorkflowState, update: Mapping[str, Any] | None) -> WorkflowState:
    """
    Fold a partial update into state and return the new state.

    Args:
        state: Current committed state (left untouched)
        update: Partial update keyed by field name; may be empty

    Returns:
        New WorkflowState

    Raises:
        StateUpdateError: Unknown field, non-list value for an append-only
            field, an attempt to re-resolve ``sai_range_approved``, or a value
            the schema rejects
    """
    if not update:
        return state

    unknown = sorted(set(update) - REDUCERS.keys())
    if unknown:
        raise StateUpdateError(f"Unknown state field(s) in update: {', '.join(unknown)}")

    if "sai_range_approved" in update:
        new_value = update["sai_range_approved"]
        if new_value is None:
            raise StateUpdateError("sai_range_approved cannot be cleared within a run")
        if state.sai_range_approved is not None:
            raise StateUpdateError("sai_range_approved was already resolved for this run")

    values = {name: getattr(state, name) for name in REDUCERS}
    for name, value in update.items():
        values[name] = REDUCERS[name](values[name], value)

    try:
        return WorkflowState.model_validate(values)
    except ValidationError as e:
        raise StateUpdateError(f"State update rejected by schema: {e}") from e


def carry_over(
    previous: WorkflowState, overrides: Mapping[str, Any] | None = None
) -> WorkflowState:
    """
    Seed a new run on a thread whose last run completed.

    Profiles and discovery results carry over; messages, errors, milestones
    and the HITL resolution start fresh. ``overrides`` replace carried fields.
    """
    seed = WorkflowState(
        user_profile=previous.user_profile,
        financial_profile=previous.financial_profile,
        discovery_results=previous.discovery_results,
    )
    return initial_state(overrides, base=seed)


def initial_state(
    input: Mapping[str, Any] | None = None, base: WorkflowState | None = None
) -> WorkflowState:
    """Build the state a fresh run starts from, validating the caller's input."""
    base = base or WorkflowState()
    if not input:
        return base
    unknown = sorted(set(input) - REDUCERS.keys())
    if unknown:
        raise StateUpdateError(f"Unknown state field(s) in input: {', '.join(unknown)}")
    try:
        return WorkflowState.model_validate({**dict(base), **dict(input)})
    except ValidationError as e:
        raise StateUpdateError(f"Invalid run input: {e}") from e
