"""Graph construction for the scholarship discovery agent."""

import logging
from typing import Any

from tuitionlift.config import DiscoverySettings
from tuitionlift.discovery import (
    AcademicCycleVerifier,
    CycleVerifier,
    DomainTrustScorer,
    FileResultSink,
    JsonProfileLoader,
    LiteLLMQueryGenerator,
    NeedMatchScorer,
    ProfileLoader,
    QueryGenerator,
    ResultSink,
    SearchClient,
    SignalNeedMatchScorer,
    TavilySearchClient,
    TemplateQueryGenerator,
    TrustScorer,
    require_complete,
)
from tuitionlift.graph.edge import END, EdgeSpec, GraphSpec
from tuitionlift.errors import ResumeError
from tuitionlift.graph.executor import GraphExecutor, RunResult
from tuitionlift.graph.hitl import HITLProtocol
from tuitionlift.graph.node import NodeProtocol, NodeSpec
from tuitionlift.graph.run_config import RunConfig, thread_id_for_user
from tuitionlift.nodes import (
    PRIORITIZE,
    RECOVERY,
    SAI_CONFIRM,
    SEARCH,
    VERIFY,
    PrioritizeNode,
    RecoveryNode,
    SaiConfirmNode,
    SearchNode,
    VerifyNode,
)
from tuitionlift.schemas.checkpoint import Checkpoint
from tuitionlift.storage import CheckpointStore, FileCheckpointStore

logger = logging.getLogger(__name__)

# Node list
nodes = [
    NodeSpec(
        id=SEARCH,
        name="Search",
        description="Anonymized scholarship search",
        external_calls=True,
    ),
    NodeSpec(
        id=VERIFY,
        name="Verify",
        description="Trust, need-match and deadline checks",
        external_calls=True,
    ),
    NodeSpec(id=PRIORITIZE, name="Prioritize", description="Rank results into milestones"),
    NodeSpec(id=SAI_CONFIRM, name="SAI confirmation", description="Ask before using SAI bands"),
    NodeSpec(id=RECOVERY, name="Recovery", description="End a faulted run safely"),
]

# Edge definitions (static flow; dynamic jumps come from node outcomes)
edges = [
    EdgeSpec(id="search-to-verify", source=SEARCH, target=VERIFY),
    EdgeSpec(id="verify-to-prioritize", source=VERIFY, target=PRIORITIZE),
    EdgeSpec(id="prioritize-to-end", source=PRIORITIZE, target=END),
    EdgeSpec(id="sai-confirm-to-search", source=SAI_CONFIRM, target=SEARCH),
    EdgeSpec(id="recovery-to-end", source=RECOVERY, target=END),
]

# Graph configuration
entry_points = {"default": SEARCH, "scheduled": PRIORITIZE}
pause_nodes = [SAI_CONFIRM]
terminal_nodes = [RECOVERY]


def build_discovery_graph() -> GraphSpec:
    """Build the GraphSpec for Search → Verify → Prioritize."""
    return GraphSpec(
        id="scholarship-discovery",
        version="1.0.0",
        entry_points=entry_points,
        terminal_nodes=terminal_nodes,
        pause_nodes=pause_nodes,
        recovery_node=RECOVERY,
        nodes=nodes,
        edges=edges,
        description="Scholarship discovery: search, verify, prioritize",
    )


class DiscoveryAgent:
    """
    Scholarship discovery agent.

    Flow: Search -> Verify -> Prioritize -> End
          Search -> SaiConfirm (suspend) -> Search   (SAI-band approval gate)
          any fault -> Recovery -> End

    Collaborators default to the production implementations built from
    ``settings``; tests pass their own.
    """

    def __init__(
        self,
        settings: DiscoverySettings | None = None,
        store: CheckpointStore | None = None,
        profile_loader: ProfileLoader | None = None,
        query_generator: QueryGenerator | None = None,
        search_client: SearchClient | None = None,
        trust_scorer: TrustScorer | None = None,
        need_scorer: NeedMatchScorer | None = None,
        result_sink: ResultSink | None = None,
        cycle_verifier: CycleVerifier | None = None,
    ):
        self.settings = settings or DiscoverySettings()
        self.store = store or FileCheckpointStore(self.settings.checkpoint_dir)
        self.profile_loader = profile_loader or JsonProfileLoader(self.settings.profiles_dir)
        self.query_generator = query_generator or self._default_query_generator()
        self.search_client = search_client or TavilySearchClient(self.settings.search_api_key)
        self.trust_scorer = trust_scorer or DomainTrustScorer()
        self.need_scorer = need_scorer or SignalNeedMatchScorer()
        self.result_sink = result_sink or FileResultSink(self.settings.results_dir)
        self.cycle_verifier = cycle_verifier or AcademicCycleVerifier()

        self.graph = build_discovery_graph()
        self.executor = GraphExecutor(self.graph, self._build_nodes(), self.store)

    def _default_query_generator(self) -> QueryGenerator:
        if self.settings.query_model:
            return LiteLLMQueryGenerator(self.settings.query_model)
        return TemplateQueryGenerator()

    def _build_nodes(self) -> dict[str, NodeProtocol]:
        return {
            SEARCH: SearchNode(self.query_generator, self.search_client),
            VERIFY: VerifyNode(
                self.trust_scorer, self.need_scorer, self.result_sink, self.cycle_verifier
            ),
            PRIORITIZE: PrioritizeNode(),
            SAI_CONFIRM: SaiConfirmNode(),
            RECOVERY: RecoveryNode(),
        }

    def run_config(self, user_id: str, **kwargs) -> RunConfig:
        """Run configuration for a user, with pacing taken from settings."""
        return RunConfig.from_settings(thread_id_for_user(user_id), self.settings, **kwargs)

    async def setup(self) -> None:
        """Idempotent storage initialization."""
        await self.store.setup()

    async def start(
        self,
        user_id: str,
        sensitive_band_mode: bool = False,
        scheduled: bool = False,
        timeout_seconds: float | None = None,
    ) -> RunResult:
        """
        Load the user's profile, check it can drive discovery, and invoke.

        Raises:
            ProfileIncompleteError: Before any checkpoint is written
        """
        profile = await self.profile_loader.load(user_id)
        require_complete(profile, user_id)

        config = self.run_config(
            user_id,
            sensitive_band_mode=sensitive_band_mode,
            scheduled=scheduled,
            timeout_seconds=timeout_seconds,
        )
        return await self.invoke(
            {
                "user_profile": profile.user_profile,
                "financial_profile": profile.financial_profile,
            },
            config,
        )

    async def invoke(self, input: dict[str, Any] | None, config: RunConfig) -> RunResult:
        return await self.executor.invoke(input, config)

    async def resume(
        self,
        user_id: str,
        decision: Any,
        node: str | None = SAI_CONFIRM,
        timeout_seconds: float | None = None,
    ) -> RunResult:
        config = self.run_config(user_id, timeout_seconds=timeout_seconds)
        return await self.executor.resume(config.thread_id, decision, node=node, config=config)

    async def answer(
        self, user_id: str, raw_answer: str, timeout_seconds: float | None = None
    ) -> RunResult:
        """
        Parse a human's answer to the outstanding request and resume with it.

        Raises:
            ResumeError: Nothing is waiting for an answer
        """
        checkpoint = await self.get_state(user_id)
        if checkpoint is None or not checkpoint.suspended:
            raise ResumeError(thread_id_for_user(user_id), "no outstanding confirmation")

        request = checkpoint.suspension_payload
        response = HITLProtocol.parse_response(raw_answer, request)
        return await self.resume(
            user_id, response.value, node=request.node_id, timeout_seconds=timeout_seconds
        )

    async def get_state(self, user_id: str) -> Checkpoint | None:
        return await self.executor.get_state(thread_id_for_user(user_id))

    def info(self) -> dict[str, Any]:
        """Get agent information."""
        return {
            "name": "TuitionLift Scholarship Discovery",
            "version": self.graph.version,
            "nodes": [n.id for n in self.graph.nodes],
            "edges": [e.id for e in self.graph.edges],
            "entry_points": self.graph.entry_points,
            "pause_nodes": self.graph.pause_nodes,
            "terminal_nodes": self.graph.terminal_nodes,
        }
