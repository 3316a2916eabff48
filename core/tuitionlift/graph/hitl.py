"""
Human-In-The-Loop (HITL) Protocol

Defines the structure of a suspension: what the engine persists when a node
asks a human for a decision, what it hands back to the caller, and how a
raw human answer is turned into the value the node is resumed with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tuitionlift.graph.state import WorkflowState


class HITLInputType(StrEnum):
    """Type of input expected from human."""

    APPROVAL = "approval"  # Yes/no decision


@dataclass
class HITLRequest:
    """
    Suspension payload persisted in the checkpoint.

    ``to_dict`` yields the caller-facing shape ``{type, message, threadId, node}``.
    """

    type: str  # e.g. "sai_range_confirmation"
    message: str
    thread_id: str
    node_id: str
    input_type: HITLInputType = HITLInputType.APPROVAL
    request_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type,
            "message": self.message,
            "threadId": self.thread_id,
            "node": self.node_id,
        }


@dataclass
class HITLResponse:
    """
    Human's response to a HITL request.

    ``value`` is what the suspended node is re-entered with.
    """

    request_id: str
    value: Any = None
    raw_input: str = ""


@dataclass
class InterruptSignal:
    """
    Returned by invoke/resume when a run is suspended.

    Carries the outstanding request and the committed state so callers can
    render the prompt without a second read.
    """

    thread_id: str
    request: HITLRequest
    state: WorkflowState | None = field(default=None, repr=False)

    @property
    def node_id(self) -> str:
        return self.request.node_id

    def to_dict(self) -> dict[str, Any]:
        return self.request.to_dict()


_APPROVE_WORDS = {"y", "yes", "true", "approve", "approved", "ok", "1"}


class HITLProtocol:
    """
    Helpers shared by the CLI and the gate node.

    1. Gate node: builds an HITLRequest and returns Interrupt
    2. Executor: persists a suspended checkpoint, returns InterruptSignal
    3. Caller: collects an answer, calls resume() with the parsed value
    4. Gate node: re-entered with the value bound in its context
    """

    @staticmethod
    def create_request(
        request_type: str,
        message: str,
        thread_id: str,
        node_id: str,
        input_type: HITLInputType = HITLInputType.APPROVAL,
    ) -> HITLRequest:
        """Create a standardized HITL request."""
        return HITLRequest(
            type=request_type,
            message=message,
            thread_id=thread_id,
            node_id=node_id,
            input_type=input_type,
            request_id=f"{thread_id}:{node_id}",
        )

    @staticmethod
    def parse_response(raw_input: str, request: HITLRequest) -> HITLResponse:
        """
        Parse a human's raw answer.

        Yes/no style words map to a boolean. Anything unrecognised counts
        as a decline, since only an explicit ``True`` approves.
        """
        word = raw_input.strip().lower()
        return HITLResponse(
            request_id=request.request_id,
            value=word in _APPROVE_WORDS,
            raw_input=raw_input,
        )

    @staticmethod
    def format_for_display(request: HITLRequest) -> str:
        """Format HITL request for terminal display."""
        return f"{request.message}\n\nApprove? [yes/no]"
