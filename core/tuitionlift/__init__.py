"""
TuitionLift - durable, resumable scholarship discovery.

A checkpointed graph runner drives Search → Verify → Prioritize for one
student at a time, with a human approval gate before SAI-band search and
a Recovery node that contains every node fault.
"""

from tuitionlift.agent import DiscoveryAgent, build_discovery_graph
from tuitionlift.graph import InterruptSignal, RunConfig, WorkflowState, thread_id_for_user
from tuitionlift.graph.executor import GraphExecutor

__version__ = "1.0.0"

__all__ = [
    "DiscoveryAgent",
    "GraphExecutor",
    "InterruptSignal",
    "RunConfig",
    "WorkflowState",
    "build_discovery_graph",
    "thread_id_for_user",
]
