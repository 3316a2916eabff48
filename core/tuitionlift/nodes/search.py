"""Search node: anonymized profile → queries → one external search call."""

import asyncio
import logging
import uuid

from tuitionlift.discovery.anonymize import anonymize_profile
from tuitionlift.discovery.base import QueryGenerator, SearchClient, SearchQuery
from tuitionlift.discovery.deduplicator import deduplicate
from tuitionlift.errors import SearchClientError
from tuitionlift.graph.node import Goto, NodeContext, NodeOutcome
from tuitionlift.nodes.base import SAI_CONFIRM, SEARCH, VERIFY, DiscoveryNode
from tuitionlift.schemas.profile import DiscoveryResult

logger = logging.getLogger(__name__)


class SearchNode(DiscoveryNode):
    """
    Finds scholarship candidates for the student.

    With SAI-band search requested, a known SAI and no decision yet, the
    node routes to SaiConfirm before any external call. Otherwise it
    anonymizes the profile, generates queries and issues one search call
    bounded by ``config.search_timeout_ms``.
    """

    name = SEARCH

    def __init__(self, query_generator: QueryGenerator, search_client: SearchClient):
        self.query_generator = query_generator
        self.search_client = search_client

    async def run(self, ctx: NodeContext) -> NodeOutcome:
        state = ctx.state
        financial = state.financial_profile

        if (
            ctx.config.sensitive_band_mode
            and financial is not None
            and financial.estimated_sai is not None
            and state.sai_range_approved is None
        ):
            logger.info("SAI-band search requested; asking for confirmation first")
            return Goto(
                target=SAI_CONFIRM,
                update={"pending_confirmation": True, "last_active_node": self.name},
            )

        profile = anonymize_profile(
            state.user_profile,
            financial,
            include_sai_band=ctx.config.sensitive_band_mode and state.sai_range_approved is True,
        )
        queries = await self.query_generator.generate(profile)
        if not queries:
            logger.info("No queries generated; continuing with no results")
            return Goto(
                target=VERIFY,
                update={"discovery_results": [], "last_active_node": self.name},
            )

        query = SearchQuery(terms=queries, batch_delay_ms=ctx.config.search_batch_delay_ms)
        timeout_ms = ctx.config.search_timeout_ms
        try:
            hits = await asyncio.wait_for(self.search_client.search(query), timeout_ms / 1000)
        except TimeoutError as e:
            raise SearchClientError(f"Search timed out after {timeout_ms}ms") from e

        results = [
            DiscoveryResult(
                id=str(uuid.uuid4()),
                discovery_run_id=ctx.config.run_id,
                title=hit.title,
                url=hit.url,
                content=hit.content,
                relevance=hit.score,
            )
            for hit in deduplicate(hits)
        ]
        logger.info(f"Search found {len(results)} unique results from {len(queries)} queries")

        return Goto(
            target=VERIFY,
            update={"discovery_results": results, "last_active_node": self.name},
        )
