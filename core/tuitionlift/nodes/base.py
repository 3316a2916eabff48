"""Shared node plumbing: node ids and local fault containment."""

import logging
from abc import abstractmethod

from tuitionlift.graph.node import Goto, NodeContext, NodeOutcome, NodeProtocol
from tuitionlift.schemas.profile import ErrorLogEntry

logger = logging.getLogger(__name__)

SEARCH = "Search"
VERIFY = "Verify"
PRIORITIZE = "Prioritize"
SAI_CONFIRM = "SaiConfirm"
RECOVERY = "Recovery"


class DiscoveryNode(NodeProtocol):
    """
    Base class for nodes that contain their own faults.

    Any exception raised by ``run`` becomes one ``error_log`` entry tagged
    with the node's name and a jump to Recovery. Cancellation is not an
    Exception and passes through untouched.
    """

    name: str = ""

    async def execute(self, ctx: NodeContext) -> NodeOutcome:
        try:
            return await self.run(ctx)
        except Exception as e:
            logger.error(f"{self.name} failed: {e}", exc_info=True)
            return Goto(
                target=RECOVERY,
                update={
                    "error_log": [ErrorLogEntry.from_exception(self.name, e)],
                    "last_active_node": self.name,
                },
            )

    @abstractmethod
    async def run(self, ctx: NodeContext) -> NodeOutcome:
        """Node body; may raise."""
