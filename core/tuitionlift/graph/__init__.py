"""Graph structures: state, nodes, edges and the HITL protocol.

The executor lives in ``tuitionlift.graph.executor`` and is imported from
there directly.
"""

from tuitionlift.graph.edge import END, EdgeSpec, GraphSpec
from tuitionlift.graph.hitl import (
    HITLInputType,
    HITLProtocol,
    HITLRequest,
    HITLResponse,
    InterruptSignal,
)
from tuitionlift.graph.node import (
    Continue,
    Goto,
    Interrupt,
    NodeContext,
    NodeOutcome,
    NodeProtocol,
    NodeSpec,
    OutcomeKind,
)
from tuitionlift.graph.run_config import RunConfig, thread_id_for_user
from tuitionlift.graph.state import REDUCERS, WorkflowState, merge

__all__ = [
    "END",
    "Continue",
    "EdgeSpec",
    "Goto",
    "GraphSpec",
    "HITLInputType",
    "HITLProtocol",
    "HITLRequest",
    "HITLResponse",
    "Interrupt",
    "InterruptSignal",
    "NodeContext",
    "NodeOutcome",
    "NodeProtocol",
    "NodeSpec",
    "OutcomeKind",
    "REDUCERS",
    "RunConfig",
    "WorkflowState",
    "merge",
    "thread_id_for_user",
]
