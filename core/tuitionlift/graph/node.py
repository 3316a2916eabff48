"""
Node Protocol - The building block of discovery graphs.

A node reads the committed state through its ``NodeContext`` and returns an
outcome. Outcomes are a closed sum type dispatched on ``kind``:

    Continue(update)            merge update, follow the node's static edge
    Goto(target, update)        merge update, jump to ``target``
    Interrupt(request, update)  merge update, persist a suspension, stop

Nodes do not touch the checkpoint store; the executor commits each outcome
before the next node starts.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from tuitionlift.graph.hitl import HITLRequest
from tuitionlift.graph.run_config import RunConfig
from tuitionlift.graph.state import WorkflowState


class OutcomeKind(StrEnum):
    CONTINUE = "continue"
    GOTO = "goto"
    INTERRUPT = "interrupt"


@dataclass(frozen=True)
class Continue:
    update: Mapping[str, Any] = field(default_factory=dict)
    kind: OutcomeKind = field(default=OutcomeKind.CONTINUE, init=False)


@dataclass(frozen=True)
class Goto:
    target: str
    update: Mapping[str, Any] = field(default_factory=dict)
    kind: OutcomeKind = field(default=OutcomeKind.GOTO, init=False)


@dataclass(frozen=True)
class Interrupt:
    request: HITLRequest
    update: Mapping[str, Any] = field(default_factory=dict)
    kind: OutcomeKind = field(default=OutcomeKind.INTERRUPT, init=False)


NodeOutcome = Continue | Goto | Interrupt


@dataclass
class NodeContext:
    """
    Everything a node may read while it runs.

    ``resume_value`` is set only when the executor re-enters a suspended
    node with the caller's decision.
    """

    node_id: str
    state: WorkflowState
    config: RunConfig
    resume_value: Any = None
    is_resume: bool = False

    @property
    def thread_id(self) -> str:
        return self.config.thread_id


class NodeProtocol(ABC):
    """Interface every node implementation satisfies."""

    @abstractmethod
    async def execute(self, ctx: NodeContext) -> NodeOutcome:
        """
        Run the node once.

        Args:
            ctx: Committed state, run configuration and resume value

        Returns:
            Continue, Goto or Interrupt
        """


class NodeSpec(BaseModel):
    """Declarative description of a node in a GraphSpec."""

    id: str
    name: str = ""
    description: str = ""
    external_calls: bool = Field(
        default=False, description="Node talks to outside collaborators (search, scoring)"
    )

    model_config = {"extra": "allow"}
