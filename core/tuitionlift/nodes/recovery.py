"""Recovery node: ends a faulted run with a friendly message."""

from tuitionlift.graph.node import Continue, NodeContext, NodeOutcome, NodeProtocol
from tuitionlift.nodes.base import RECOVERY
from tuitionlift.schemas.profile import Message

RECOVERY_MESSAGE = (
    "Something went wrong while processing your discovery. Our team has been notified. "
    "Please try again in a few minutes, or reach out if the issue persists."
)


class RecoveryNode(NodeProtocol):
    """
    Terminal error containment. Performs no external calls; the fault itself
    was already recorded in ``error_log`` by the node that raised it.
    """

    name = RECOVERY

    async def execute(self, ctx: NodeContext) -> NodeOutcome:
        return Continue(
            update={
                "messages": [Message(content=RECOVERY_MESSAGE, node=self.name)],
                "last_active_node": self.name,
            }
        )
