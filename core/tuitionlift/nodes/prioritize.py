"""Prioritize node: rank verified results into application milestones."""

from tuitionlift.graph.node import Continue, NodeContext, NodeOutcome
from tuitionlift.nodes.base import PRIORITIZE, DiscoveryNode
from tuitionlift.schemas.profile import ActiveMilestone, DiscoveryResult, Message

TRUST_WEIGHT = 0.5
NEED_WEIGHT = 0.5

NO_MATCHES_MESSAGE = (
    "No matches yet. This can happen when filters are narrow or financial info is limited. "
    "Try broadening your search (for example, add more majors or interests), complete your "
    "financial profile if you haven't, or check back later as new scholarships are added "
    "regularly."
)


def composite_score(result: DiscoveryResult) -> float:
    return TRUST_WEIGHT * (result.trust_score or 0) + NEED_WEIGHT * (result.need_match_score or 0)


class PrioritizeNode(DiscoveryNode):
    name = PRIORITIZE

    async def run(self, ctx: NodeContext) -> NodeOutcome:
        results = ctx.state.discovery_results

        if not results:
            return Continue(
                update={
                    "active_milestones": [],
                    "messages": [Message(content=NO_MATCHES_MESSAGE, node=self.name)],
                    "last_active_node": self.name,
                }
            )

        # sorted() is stable, so ties keep the verified order
        ranked = sorted(results, key=composite_score, reverse=True)
        milestones = [
            ActiveMilestone(
                id=f"ms-{result.id}",
                scholarship_id=result.id,
                title=result.title,
                priority=i + 1,
                composite_score=composite_score(result),
            )
            for i, result in enumerate(ranked)
        ]
        return Continue(update={"active_milestones": milestones, "last_active_node": self.name})
