"""SaiConfirm node: human approval gate for SAI-band search."""

import logging

from tuitionlift.graph.hitl import HITLProtocol
from tuitionlift.graph.node import Goto, Interrupt, NodeContext, NodeOutcome
from tuitionlift.nodes.base import SAI_CONFIRM, SEARCH, DiscoveryNode
from tuitionlift.schemas.profile import Message

logger = logging.getLogger(__name__)

SAI_CONFIRMATION_TYPE = "sai_range_confirmation"

SAI_CONFIRMATION_PROMPT = (
    "Would you like us to use your SAI range for a more targeted search? "
    "This helps find need-based scholarships that match your financial profile. "
    "You can approve to include SAI bands, or decline to use only broad income tiers."
)


class SaiConfirmNode(DiscoveryNode):
    """
    First entry: prompt and suspend. Re-entry with the decision: record it
    (only an explicit ``True`` approves) and go back to Search.
    """

    name = SAI_CONFIRM

    async def run(self, ctx: NodeContext) -> NodeOutcome:
        if not ctx.is_resume:
            request = HITLProtocol.create_request(
                request_type=SAI_CONFIRMATION_TYPE,
                message=SAI_CONFIRMATION_PROMPT,
                thread_id=ctx.thread_id,
                node_id=self.name,
            )
            return Interrupt(
                request=request,
                update={
                    "messages": [Message(content=SAI_CONFIRMATION_PROMPT, node=self.name)],
                    "pending_confirmation": True,
                    "last_active_node": self.name,
                },
            )

        approved = ctx.resume_value is True
        logger.info(f"SAI-band search {'approved' if approved else 'declined'}")
        return Goto(
            target=SEARCH,
            update={
                "sai_range_approved": approved,
                "pending_confirmation": False,
                "last_active_node": self.name,
            },
        )
