"""Verify node: trust and need-match scoring with hard fee exclusion."""

import logging
from collections import Counter

from tuitionlift.discovery.base import CycleVerifier, NeedMatchScorer, ResultSink, TrustScorer
from tuitionlift.discovery.categories import infer_categories
from tuitionlift.discovery.cycle_verifier import AcademicCycleVerifier
from tuitionlift.graph.node import Goto, NodeContext, NodeOutcome
from tuitionlift.nodes.base import PRIORITIZE, VERIFY, DiscoveryNode

logger = logging.getLogger(__name__)


class VerifyNode(DiscoveryNode):
    """
    Scores every raw result and drops the ones with zero trust.

    Kept results also get their deadline checked against the academic
    cycle and their award categories.
    """

    name = VERIFY

    def __init__(
        self,
        trust_scorer: TrustScorer,
        need_scorer: NeedMatchScorer,
        sink: ResultSink | None = None,
        cycle_verifier: CycleVerifier | None = None,
    ):
        self.trust_scorer = trust_scorer
        self.need_scorer = need_scorer
        self.sink = sink
        self.cycle_verifier = cycle_verifier or AcademicCycleVerifier()

    async def run(self, ctx: NodeContext) -> NodeOutcome:
        financial = ctx.state.financial_profile
        verified = []
        excluded = 0

        for result in ctx.state.discovery_results:
            trust = self.trust_scorer.score(result)
            if trust.score <= 0:
                excluded += 1
                continue
            cycle = self.cycle_verifier.verify(result)
            verified.append(
                result.model_copy(
                    update={
                        "trust_score": trust.score,
                        "trust_report": trust.report,
                        "need_match_score": self.need_scorer.score(financial, result),
                        "verification_status": cycle.status,
                        "deadline": cycle.deadline.isoformat() if cycle.deadline else None,
                        "categories": infer_categories(result.title, result.content),
                    }
                )
            )

        if excluded:
            logger.info(f"Excluded {excluded} results failing the trust check")
        if verified:
            statuses = Counter(str(r.verification_status) for r in verified)
            logger.info(f"Deadline checks: {dict(statuses)}")

        if verified and self.sink is not None:
            await self.sink.persist(ctx.thread_id, verified)

        return Goto(
            target=PRIORITIZE,
            update={"discovery_results": verified, "last_active_node": self.name},
        )
