"""
Edge Protocol - How nodes connect in a discovery graph.

Every non-terminal node declares exactly one static edge, followed when the
node returns ``Continue``. Dynamic routing (``Goto``) bypasses edges
entirely, so the graph only needs to describe the default flow.

Entry points name the node a run starts at; the executor picks one once per
run from ``RunConfig.scheduled``.
"""

from pydantic import BaseModel, Field

from tuitionlift.graph.node import NodeSpec

END = "End"


class EdgeSpec(BaseModel):
    """
    Static transition between two nodes.

    Example:
        EdgeSpec(id="search-to-verify", source="Search", target="Verify")
    """

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID, or END")
    description: str = ""

    model_config = {"extra": "allow"}


class GraphSpec(BaseModel):
    """
    Complete specification of a discovery graph.

        GraphSpec(
            id="scholarship-discovery",
            entry_points={"default": "Search", "scheduled": "Prioritize"},
            terminal_nodes=["Recovery"],
            recovery_node="Recovery",
            nodes=[...],
            edges=[...],
        )
    """

    id: str
    version: str = "1.0.0"

    entry_points: dict[str, str] = Field(
        default_factory=dict, description="Named entry points. Format: {name: node_id}"
    )
    terminal_nodes: list[str] = Field(
        default_factory=list, description="Nodes after which the run ends"
    )
    pause_nodes: list[str] = Field(
        default_factory=list, description="Nodes that may suspend for HITL input"
    )
    recovery_node: str | None = Field(
        default=None, description="Node that receives control when another node faults"
    )

    nodes: list[NodeSpec] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)

    max_steps: int = Field(default=50, description="Maximum node executions per invocation")
    description: str = ""

    model_config = {"extra": "allow"}

    def get_node(self, node_id: str) -> NodeSpec | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def entry_node(self, scheduled: bool = False) -> str:
        """Resolve the entry node for a run."""
        name = "scheduled" if scheduled else "default"
        return self.entry_points[name]

    def static_next(self, node_id: str) -> str:
        """Target of the node's static edge, or END for terminal nodes."""
        for edge in self.edges:
            if edge.source == node_id:
                return edge.target
        if node_id in self.terminal_nodes:
            return END
        raise KeyError(f"Node '{node_id}' has no outgoing edge")

    def validate(self) -> list[str]:
        """Validate the graph structure."""
        errors = []
        node_ids = {node.id for node in self.nodes}

        if END in node_ids:
            errors.append(f"'{END}' is reserved and cannot be a node ID")

        for name in ("default", "scheduled"):
            if name not in self.entry_points:
                errors.append(f"Missing '{name}' entry point")
        for name, node_id in self.entry_points.items():
            if node_id not in node_ids:
                errors.append(f"Entry point '{name}' references missing node '{node_id}'")

        for term in self.terminal_nodes:
            if term not in node_ids:
                errors.append(f"Terminal node '{term}' not found")

        for pause in self.pause_nodes:
            if pause not in node_ids:
                errors.append(f"Pause node '{pause}' not found")

        if self.recovery_node is None:
            errors.append("Missing recovery node")
        else:
            if self.recovery_node not in node_ids:
                errors.append(f"Recovery node '{self.recovery_node}' not found")
            elif self.recovery_node not in self.terminal_nodes and not any(
                e.source == self.recovery_node and e.target == END for e in self.edges
            ):
                errors.append(f"Recovery node '{self.recovery_node}' must end the run")

        seen_sources: set[str] = set()
        for edge in self.edges:
            if edge.source not in node_ids:
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if edge.target != END and edge.target not in node_ids:
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")
            if edge.source in seen_sources:
                errors.append(f"Node '{edge.source}' has more than one static edge")
            seen_sources.add(edge.source)

        for node_id in node_ids:
            if node_id not in seen_sources and node_id not in self.terminal_nodes:
                errors.append(f"Node '{node_id}' has no static edge and is not terminal")

        return errors
