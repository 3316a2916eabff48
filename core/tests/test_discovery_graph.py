"""
End-to-end tests for the scholarship discovery graph.

All external collaborators are fakes; the checkpoint store is in memory so
every committed step can be inspected.
"""

import asyncio

import pytest
from fakes import (
    EDU_HIT,
    ORG_HIT,
    CountingSearchClient,
    FakeQueryGenerator,
    FlakyTrustScorer,
    StaticProfileLoader,
    make_financial,
    make_user,
)

from tuitionlift.config import DiscoverySettings
from tuitionlift.discovery import InMemoryResultSink
from tuitionlift.errors import (
    InvalidThreadIdError,
    ProfileIncompleteError,
    ResumeError,
    SearchClientError,
    ThreadBusyError,
    TuitionLiftError,
)
from tuitionlift.graph.hitl import InterruptSignal
from tuitionlift.graph.state import WorkflowState
from tuitionlift.nodes import PRIORITIZE, RECOVERY, SAI_CONFIRM, SEARCH, VERIFY
from tuitionlift.nodes.prioritize import NO_MATCHES_MESSAGE
from tuitionlift.nodes.recovery import RECOVERY_MESSAGE
from tuitionlift.nodes.sai_confirm import SAI_CONFIRMATION_PROMPT, SAI_CONFIRMATION_TYPE
from tuitionlift.schemas.checkpoint import CheckpointStatus
from tuitionlift.schemas.profile import MeritPreference, VerificationStatus
from tuitionlift.storage import FileCheckpointStore, InMemoryCheckpointStore

USER = "42"
THREAD = "user_42"


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_search_verify_prioritize(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(search_client=search)

        result = await agent.start(USER)

        assert isinstance(result, WorkflowState)
        assert search.calls == 1
        assert result.last_active_node == PRIORITIZE
        assert result.error_log == []

        titles = [m.title for m in result.active_milestones]
        assert titles == [EDU_HIT.title, ORG_HIT.title]
        assert [m.priority for m in result.active_milestones] == [1, 2]
        assert result.active_milestones[0].composite_score == 95
        assert result.active_milestones[1].composite_score == 57.5

    @pytest.mark.asyncio
    async def test_fee_result_is_excluded(self, make_agent):
        agent = make_agent()
        result = await agent.start(USER)

        urls = {r.url for r in result.discovery_results}
        assert urls == {EDU_HIT.url, ORG_HIT.url}
        for r in result.discovery_results:
            assert r.trust_score > 0
            assert r.trust_report.fee_check == "pass"

    @pytest.mark.asyncio
    async def test_results_carry_deadline_check_and_categories(self, make_agent):
        result = await make_agent().start(USER)

        by_url = {r.url: r for r in result.discovery_results}
        assert by_url[EDU_HIT.url].categories == ["need_based"]
        assert by_url[ORG_HIT.url].categories == ["merit", "field_specific"]
        for r in result.discovery_results:
            assert r.verification_status == VerificationStatus.AMBIGUOUS_DEADLINE
            assert r.deadline is None

    @pytest.mark.asyncio
    async def test_results_stamped_with_run_id(self, make_agent):
        agent = make_agent()
        await agent.start(USER)
        checkpoint = await agent.get_state(USER)

        assert checkpoint.state.discovery_results
        for r in checkpoint.state.discovery_results:
            assert r.discovery_run_id == checkpoint.run_id

    @pytest.mark.asyncio
    async def test_execution_path_and_status(self, make_agent):
        agent = make_agent()
        await agent.start(USER)
        checkpoint = await agent.get_state(USER)

        assert checkpoint.thread_id == THREAD
        assert checkpoint.execution_path == [SEARCH, VERIFY, PRIORITIZE]
        assert checkpoint.status == CheckpointStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_verified_results_reach_the_sink(self, make_agent):
        sink = InMemoryResultSink()
        agent = make_agent(result_sink=sink)
        await agent.start(USER)

        assert sink.persist_calls == 1
        assert set(sink.results[THREAD]) == {EDU_HIT.url, ORG_HIT.url}

    @pytest.mark.asyncio
    async def test_raw_profile_never_reaches_query_generation(self, make_agent):
        generator = FakeQueryGenerator()
        agent = make_agent(query_generator=generator)
        await agent.start(USER)

        profile = generator.profiles[0]
        assert profile.sai_band is None
        assert profile.major == "Computer Science"
        assert profile.spikes == ["Robotics Club", "{{SPIKE_2}}"]
        assert profile.merit_first is False

    @pytest.mark.asyncio
    async def test_merit_first_student_is_flagged_for_query_generation(self, make_agent):
        generator = FakeQueryGenerator()
        user = make_user(merit_filter_preference=MeritPreference.MERIT_ONLY)
        agent = make_agent(
            query_generator=generator,
            profile_loader=StaticProfileLoader(user, make_financial(sai=40000, pell=False)),
        )
        await agent.start(USER)

        assert generator.profiles[0].merit_first is True
        assert generator.profiles[0].sai_band is None
        assert "1500" not in generator.profiles[0].model_dump_json()


class TestEmptyAndScheduled:
    @pytest.mark.asyncio
    async def test_no_results_yields_guidance_message(self, make_agent):
        agent = make_agent(search_client=CountingSearchClient(hits=[]))
        result = await agent.start(USER)

        assert result.active_milestones == []
        assert result.messages[-1].content == NO_MATCHES_MESSAGE
        assert result.messages[-1].content.startswith("No matches yet.")
        assert (await agent.get_state(USER)).status == CheckpointStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_no_queries_skips_search_call(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(query_generator=FakeQueryGenerator(queries=[]), search_client=search)
        result = await agent.start(USER)

        assert search.calls == 0
        assert result.messages[-1].content == NO_MATCHES_MESSAGE

    @pytest.mark.asyncio
    async def test_scheduled_run_reprioritizes_without_searching(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(search_client=search)

        await agent.start(USER)
        result = await agent.start(USER, scheduled=True)

        assert search.calls == 1
        assert [m.title for m in result.active_milestones] == [EDU_HIT.title, ORG_HIT.title]
        assert (await agent.get_state(USER)).execution_path == [PRIORITIZE]

    @pytest.mark.asyncio
    async def test_scheduled_first_run_has_nothing_to_rank(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(search_client=search)
        result = await agent.start(USER, scheduled=True)

        assert search.calls == 0
        assert result.messages[-1].content == NO_MATCHES_MESSAGE


class TestFaults:
    @pytest.mark.asyncio
    async def test_search_failure_routes_to_recovery(self, make_agent):
        search = CountingSearchClient(error=SearchClientError("Tavily API error 500"))
        agent = make_agent(search_client=search)
        result = await agent.start(USER)

        assert result.last_active_node == RECOVERY
        assert len(result.error_log) == 1
        assert result.error_log[0].node == SEARCH
        assert "Tavily API error 500" in result.error_log[0].message
        assert result.messages[-1].content == RECOVERY_MESSAGE
        assert (await agent.get_state(USER)).status == CheckpointStatus.FAILED

    @pytest.mark.asyncio
    async def test_search_timeout_routes_to_recovery(self, make_agent, tmp_path):
        settings = DiscoverySettings(
            storage_path=tmp_path,
            search_api_key=None,
            search_batch_delay_ms=0,
            search_timeout_ms=50,
            query_model=None,
        )
        agent = make_agent(settings=settings, search_client=CountingSearchClient(delay=5))
        result = await agent.start(USER)

        assert result.last_active_node == RECOVERY
        assert len(result.error_log) == 1
        assert result.error_log[0].message == "Search timed out after 50ms"

    @pytest.mark.asyncio
    async def test_failed_run_resumes_without_repeating_search(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(search_client=search, trust_scorer=FlakyTrustScorer(failures=1))

        first = await agent.start(USER)
        assert first.last_active_node == RECOVERY
        assert first.error_log[0].node == VERIFY
        checkpoint = await agent.get_state(USER)
        assert checkpoint.resume_from == VERIFY

        second = await agent.start(USER)

        assert search.calls == 1
        assert second.last_active_node == PRIORITIZE
        assert len(second.active_milestones) == 2
        assert len(second.error_log) == 1
        assert (await agent.get_state(USER)).status == CheckpointStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_incomplete_profile_writes_nothing(self, make_agent):
        store = InMemoryCheckpointStore()
        agent = make_agent(
            store=store,
            profile_loader=StaticProfileLoader(make_user(major=None), make_financial()),
        )

        with pytest.raises(ProfileIncompleteError) as exc_info:
            await agent.start(USER)

        assert exc_info.value.missing == ["major"]
        assert store.save_count == 0
        assert await agent.get_state(USER) is None

    @pytest.mark.asyncio
    async def test_missing_profile_rejected(self, make_agent):
        agent = make_agent(profile_loader=StaticProfileLoader())
        with pytest.raises(ProfileIncompleteError, match="profile"):
            await agent.start(USER)

    @pytest.mark.asyncio
    async def test_unusable_user_id_rejected(self, make_agent):
        store = InMemoryCheckpointStore()
        search = CountingSearchClient()
        agent = make_agent(store=store, search_client=search)

        with pytest.raises(InvalidThreadIdError) as exc_info:
            await agent.start("jane@example.com")

        assert isinstance(exc_info.value, TuitionLiftError)
        assert exc_info.value.thread_id == "user_jane@example.com"
        assert search.calls == 0
        assert store.save_count == 0


class TestSaiConfirmation:
    @pytest.mark.asyncio
    async def test_sensitive_mode_suspends_before_any_search(self, make_agent):
        search = CountingSearchClient()
        agent = make_agent(search_client=search)

        signal = await agent.start(USER, sensitive_band_mode=True)

        assert isinstance(signal, InterruptSignal)
        assert search.calls == 0
        assert signal.node_id == SAI_CONFIRM
        assert signal.to_dict() == {
            "type": SAI_CONFIRMATION_TYPE,
            "message": SAI_CONFIRMATION_PROMPT,
            "threadId": THREAD,
            "node": SAI_CONFIRM,
        }

        checkpoint = await agent.get_state(USER)
        assert checkpoint.suspended
        assert checkpoint.status == CheckpointStatus.SUSPENDED
        assert checkpoint.next_node == SAI_CONFIRM
        assert checkpoint.state.pending_confirmation is True
        assert checkpoint.state.sai_range_approved is None

    @pytest.mark.asyncio
    async def test_approval_adds_sai_band(self, make_agent):
        generator = FakeQueryGenerator()
        search = CountingSearchClient()
        agent = make_agent(query_generator=generator, search_client=search)

        await agent.start(USER, sensitive_band_mode=True)
        result = await agent.resume(USER, True)

        assert isinstance(result, WorkflowState)
        assert search.calls == 1
        assert generator.profiles[-1].sai_band == "0-2000"
        assert result.sai_range_approved is True
        assert result.pending_confirmation is False
        assert len(result.active_milestones) == 2

        checkpoint = await agent.get_state(USER)
        assert checkpoint.execution_path == [SEARCH, SAI_CONFIRM, SEARCH, VERIFY, PRIORITIZE]
        assert not checkpoint.suspended
        assert checkpoint.suspension_payload is None

    @pytest.mark.asyncio
    async def test_typed_answer_is_parsed_against_the_prompt(self, make_agent):
        generator = FakeQueryGenerator()
        agent = make_agent(query_generator=generator)

        await agent.start(USER, sensitive_band_mode=True)
        result = await agent.answer(USER, " Yes ")

        assert result.sai_range_approved is True
        assert generator.profiles[-1].sai_band == "0-2000"

    @pytest.mark.asyncio
    async def test_unrecognised_answer_declines(self, make_agent):
        agent = make_agent()
        await agent.start(USER, sensitive_band_mode=True)

        result = await agent.answer(USER, "maybe later")

        assert result.sai_range_approved is False

    @pytest.mark.asyncio
    async def test_answer_without_outstanding_prompt_rejected(self, make_agent):
        agent = make_agent()
        await agent.start(USER)

        with pytest.raises(ResumeError):
            await agent.answer(USER, "yes")

    @pytest.mark.asyncio
    async def test_decline_searches_without_band(self, make_agent):
        generator = FakeQueryGenerator()
        agent = make_agent(query_generator=generator)

        await agent.start(USER, sensitive_band_mode=True)
        result = await agent.resume(USER, False)

        assert generator.profiles[-1].sai_band is None
        assert result.sai_range_approved is False
        assert len(result.active_milestones) == 2

    @pytest.mark.asyncio
    async def test_non_boolean_decision_counts_as_decline(self, make_agent):
        generator = FakeQueryGenerator()
        agent = make_agent(query_generator=generator)

        await agent.start(USER, sensitive_band_mode=True)
        result = await agent.resume(USER, "yes please")

        assert result.sai_range_approved is False
        assert generator.profiles[-1].sai_band is None

    @pytest.mark.asyncio
    async def test_invoke_while_suspended_returns_same_interrupt(self, make_agent):
        search = CountingSearchClient()
        store = InMemoryCheckpointStore()
        agent = make_agent(search_client=search, store=store)

        first = await agent.start(USER, sensitive_band_mode=True)
        saves = store.save_count
        second = await agent.start(USER)

        assert isinstance(second, InterruptSignal)
        assert second.to_dict() == first.to_dict()
        assert search.calls == 0
        assert store.save_count == saves

    @pytest.mark.asyncio
    async def test_resume_at_wrong_node_rejected(self, make_agent):
        agent = make_agent()
        await agent.start(USER, sensitive_band_mode=True)

        with pytest.raises(ResumeError, match="SaiConfirm"):
            await agent.resume(USER, True, node=SEARCH)

        assert (await agent.get_state(USER)).suspended

    @pytest.mark.asyncio
    async def test_resume_after_completion_rejected(self, make_agent):
        agent = make_agent()
        await agent.start(USER)

        with pytest.raises(ResumeError, match="not suspended"):
            await agent.resume(USER, True)

    @pytest.mark.asyncio
    async def test_no_sai_skips_confirmation(self, make_agent):
        search = CountingSearchClient()
        generator = FakeQueryGenerator()
        agent = make_agent(
            search_client=search,
            query_generator=generator,
            profile_loader=StaticProfileLoader(make_user(), make_financial(sai=None)),
        )

        result = await agent.start(USER, sensitive_band_mode=True)

        assert isinstance(result, WorkflowState)
        assert search.calls == 1
        assert result.sai_range_approved is None
        assert generator.profiles[0].sai_band is None

    @pytest.mark.asyncio
    async def test_new_run_asks_again(self, make_agent):
        agent = make_agent()
        await agent.start(USER, sensitive_band_mode=True)
        await agent.resume(USER, True)

        signal = await agent.start(USER, sensitive_band_mode=True)

        assert isinstance(signal, InterruptSignal)


class TestThreadOwnership:
    @pytest.mark.asyncio
    async def test_agents_sharing_a_directory_run_a_thread_once(self, make_agent, tmp_path):
        search = CountingSearchClient(delay=0.05)
        first = make_agent(store=FileCheckpointStore(tmp_path / "threads"), search_client=search)
        second = make_agent(store=FileCheckpointStore(tmp_path / "threads"), search_client=search)

        results = await asyncio.gather(
            first.start(USER), second.start(USER), return_exceptions=True
        )

        busy = [r for r in results if isinstance(r, ThreadBusyError)]
        finished = [r for r in results if isinstance(r, WorkflowState)]
        assert len(busy) == 1
        assert len(finished) == 1
        assert search.calls == 1
        assert finished[0].last_active_node == PRIORITIZE
        assert (await first.get_state(USER)).status == CheckpointStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_thread_is_free_again_after_a_run(self, make_agent, tmp_path):
        search = CountingSearchClient()
        first = make_agent(store=FileCheckpointStore(tmp_path / "threads"), search_client=search)
        second = make_agent(store=FileCheckpointStore(tmp_path / "threads"), search_client=search)

        await first.start(USER)
        await second.start(USER)

        assert search.calls == 2


class TestStateInspection:
    @pytest.mark.asyncio
    async def test_get_state_is_idempotent(self, make_agent):
        store = InMemoryCheckpointStore()
        agent = make_agent(store=store)
        await agent.start(USER)

        snapshots = [await agent.get_state(USER) for _ in range(3)]

        assert snapshots[0] == snapshots[1] == snapshots[2]
        assert store.save_count == 4

    @pytest.mark.asyncio
    async def test_unknown_user_has_no_state(self, make_agent):
        assert await make_agent().get_state("nobody") is None

    def test_info_describes_graph(self, make_agent):
        info = make_agent().info()
        assert info["entry_points"] == {"default": SEARCH, "scheduled": PRIORITIZE}
        assert info["pause_nodes"] == [SAI_CONFIRM]
        assert set(info["nodes"]) == {SEARCH, VERIFY, PRIORITIZE, SAI_CONFIRM, RECOVERY}
