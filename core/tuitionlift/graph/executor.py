"""
Graph Executor - Runs discovery graphs durably.

The executor:
1. Loads the thread's checkpoint (or seeds a fresh run)
2. Executes the current node with the committed state
3. Merges the node's outcome through the reducers
4. Persists a checkpoint before the next node starts
5. Suspends on Interrupt, stops at End or after the recovery node

Invocations on the same thread are serialized by a per-thread lock, and
the store claim keeps any other executor or process off the thread until
the run returns. Different threads run concurrently. Node faults never escape: they are
logged into ``error_log`` and routed to the recovery node. Checkpoint write
failures always propagate.
"""

import asyncio
import logging
import time
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from tuitionlift.errors import (
    GraphValidationError,
    ResumeError,
    RunTimeoutError,
    StateUpdateError,
)
from tuitionlift.graph.edge import END, GraphSpec
from tuitionlift.graph.hitl import InterruptSignal
from tuitionlift.graph.node import (
    Goto,
    NodeContext,
    NodeOutcome,
    NodeProtocol,
    OutcomeKind,
)
from tuitionlift.graph.run_config import RunConfig
from tuitionlift.graph.state import WorkflowState, carry_over, initial_state, merge
from tuitionlift.observability import set_trace_context
from tuitionlift.schemas.checkpoint import Checkpoint, CheckpointStatus
from tuitionlift.schemas.profile import ErrorLogEntry
from tuitionlift.storage.checkpoint_store import CheckpointStore

RunResult = WorkflowState | InterruptSignal

_NO_RESUME = object()


@dataclass
class _Progress:
    """Latest committed checkpoint of the run in flight (read on timeout)."""

    checkpoint: Checkpoint


class GraphExecutor:
    """
    Executes discovery graphs with a checkpoint after every node.

    Example:
        executor = GraphExecutor(
            graph=graph_spec,
            nodes={"Search": SearchNode(...), ...},
            store=FileCheckpointStore(path),
        )

        result = await executor.invoke(
            {"user_profile": profile},
            RunConfig.for_user("42"),
        )
    """

    def __init__(
        self,
        graph: GraphSpec,
        nodes: Mapping[str, NodeProtocol],
        store: CheckpointStore,
    ):
        """
        Initialize the executor.

        Args:
            graph: Graph structure (edges, entry points, recovery node)
            nodes: Node implementations keyed by node ID
            store: Checkpoint persistence

        Raises:
            GraphValidationError: If the graph or the implementations are inconsistent
        """
        errors = graph.validate()
        declared = {node.id for node in graph.nodes}
        for node_id in sorted(declared - nodes.keys()):
            errors.append(f"Node '{node_id}' has no implementation")
        for node_id in sorted(nodes.keys() - declared):
            errors.append(f"Implementation '{node_id}' is not declared in the graph")
        if errors:
            raise GraphValidationError(errors)

        self.graph = graph
        self.node_registry = dict(nodes)
        self.store = store
        self.logger = logging.getLogger(__name__)
        # Entries vanish once no invoke holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._setup_done = False

    def _lock_for(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    async def _ensure_setup(self) -> None:
        if not self._setup_done:
            await self.store.setup()
            self._setup_done = True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def invoke(
        self, input: Mapping[str, Any] | None, config: RunConfig
    ) -> RunResult:
        """
        Start or continue a run on ``config.thread_id``.

        - No checkpoint: fresh run from ``input``, entry chosen by ``config.scheduled``
        - Active checkpoint: continue at its next node (``input`` ignored)
        - Failed checkpoint: continue at the node that faulted
        - Suspended checkpoint: no-op, the outstanding interrupt is returned
        - Completed checkpoint: new run carrying profiles and results over

        Args:
            input: Initial state fields for a new run
            config: Run configuration

        Returns:
            Final WorkflowState, or InterruptSignal if the run suspended

        Raises:
            CheckpointWriteError: If a checkpoint could not be persisted
            RunTimeoutError: If ``config.timeout_seconds`` elapsed first
            ThreadBusyError: If another executor or process owns the thread
        """
        thread_id = config.thread_id
        async with self._lock_for(thread_id):
            await self._ensure_setup()
            async with self.store.claim(thread_id):
                return await self._invoke_owned(input, config)

    async def _invoke_owned(
        self, input: Mapping[str, Any] | None, config: RunConfig
    ) -> RunResult:
        thread_id = config.thread_id
        checkpoint = await self.store.load(thread_id)

        if checkpoint is not None and checkpoint.suspended:
            set_trace_context(thread_id=thread_id, run_id=checkpoint.run_id)
            self.logger.info(
                f"⏸ Thread is suspended at {checkpoint.next_node}; awaiting resume"
            )
            return InterruptSignal(
                thread_id=thread_id,
                request=checkpoint.suspension_payload,
                state=checkpoint.state,
            )

        if checkpoint is None:
            checkpoint = await self._start_run(initial_state(input), config)
        elif checkpoint.status == CheckpointStatus.ACTIVE:
            if input:
                self.logger.warning("Ignoring input: thread has an unfinished run")
            self.logger.info(f"🔄 Continuing interrupted run at {checkpoint.next_node}")
        elif checkpoint.status == CheckpointStatus.FAILED and checkpoint.resume_from:
            self.logger.info(f"🔄 Retrying failed run from {checkpoint.resume_from}")
            checkpoint = checkpoint.model_copy(
                update={
                    "status": CheckpointStatus.ACTIVE,
                    "next_node": checkpoint.resume_from,
                    "resume_from": None,
                }
            )
        else:
            checkpoint = await self._start_run(carry_over(checkpoint.state, input), config)

        return await self._run(checkpoint, self._effective_config(checkpoint, config))

    async def resume(
        self,
        thread_id: str,
        decision: Any,
        node: str | None = None,
        config: RunConfig | None = None,
    ) -> RunResult:
        """
        Resolve the thread's outstanding interrupt and continue the run.

        Args:
            thread_id: Suspended thread
            decision: Value the suspended node is re-entered with
            node: Expected suspended node; rejected if it does not match
            config: Pacing for the continued run (flags come from the checkpoint)

        Returns:
            Final WorkflowState, or InterruptSignal if the run suspended again

        Raises:
            ResumeError: Thread unknown, not suspended, or suspended elsewhere
            ThreadBusyError: If another executor or process owns the thread
        """
        if config is not None and config.thread_id != thread_id:
            raise ResumeError(thread_id, f"config targets thread '{config.thread_id}'")

        async with self._lock_for(thread_id):
            await self._ensure_setup()
            async with self.store.claim(thread_id):
                checkpoint = await self.store.load(thread_id)

                if checkpoint is None:
                    raise ResumeError(thread_id, "no checkpoint exists")
                if not checkpoint.suspended:
                    raise ResumeError(
                        thread_id, f"thread is not suspended (status={checkpoint.status})"
                    )
                if node is not None and node != checkpoint.next_node:
                    raise ResumeError(
                        thread_id, f"suspended at '{checkpoint.next_node}', not '{node}'"
                    )

                effective = self._effective_config(
                    checkpoint, config or RunConfig(thread_id=thread_id)
                )
                self.logger.info(f"▶ Resuming {checkpoint.next_node} with decision={decision!r}")
                return await self._run(checkpoint, effective, resume_value=decision)

    async def get_state(self, config: RunConfig | str) -> Checkpoint | None:
        """Read-only view of the thread's last committed checkpoint."""
        thread_id = config if isinstance(config, str) else config.thread_id
        return await self.store.load(thread_id)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def _start_run(self, state: WorkflowState, config: RunConfig) -> Checkpoint:
        entry = self.graph.entry_node(scheduled=config.scheduled)
        checkpoint = Checkpoint.create(
            thread_id=config.thread_id,
            run_id=config.run_id,
            state=state,
            next_node=entry,
            scheduled=config.scheduled,
            sensitive_band_mode=config.sensitive_band_mode,
        )
        await self.store.save(checkpoint)
        set_trace_context(thread_id=config.thread_id, run_id=config.run_id)
        self.logger.info(
            f"🚀 Starting run (entry={entry}, scheduled={config.scheduled})",
            extra={"event": "run_started"},
        )
        return checkpoint

    @staticmethod
    def _effective_config(checkpoint: Checkpoint, config: RunConfig) -> RunConfig:
        # Run flags are fixed when the run starts
        return replace(
            config,
            run_id=checkpoint.run_id,
            scheduled=checkpoint.scheduled,
            sensitive_band_mode=checkpoint.sensitive_band_mode,
        )

    async def _run(
        self, checkpoint: Checkpoint, config: RunConfig, resume_value: Any = _NO_RESUME
    ) -> RunResult:
        set_trace_context(thread_id=config.thread_id, run_id=config.run_id)
        progress = _Progress(checkpoint)

        if config.timeout_seconds is None:
            return await self._run_loop(progress, config, resume_value)

        try:
            async with asyncio.timeout(config.timeout_seconds):
                return await self._run_loop(progress, config, resume_value)
        except TimeoutError as e:
            committed = progress.checkpoint.execution_path
            last_node = committed[-1] if committed else None
            self.logger.error(
                f"⏱ Run exceeded {config.timeout_seconds}s; progress up to "
                f"{last_node or 'start'} is checkpointed",
                extra={"event": "run_timeout"},
            )
            raise RunTimeoutError(config.thread_id, config.timeout_seconds, last_node) from e

    async def _run_loop(
        self, progress: _Progress, config: RunConfig, resume_value: Any
    ) -> RunResult:
        checkpoint = progress.checkpoint
        current = checkpoint.next_node
        steps = 0

        while current != END:
            steps += 1
            set_trace_context(node_id=current)
            started = time.perf_counter()

            is_resume = resume_value is not _NO_RESUME
            ctx = NodeContext(
                node_id=current,
                state=checkpoint.state,
                config=config,
                resume_value=resume_value if is_resume else None,
                is_resume=is_resume,
            )
            resume_value = _NO_RESUME

            # Recovery must still run after an overrun fault
            if steps > self.graph.max_steps and current != self.graph.recovery_node:
                overrun = RuntimeError(f"Step limit {self.graph.max_steps} exceeded")
                outcome, state = self._contain(current, checkpoint.state, overrun)
            else:
                self.logger.info(f"▶ Step {steps}: {current}")
                outcome, state = await self._execute_node(current, ctx)

            latency_ms = int((time.perf_counter() - started) * 1000)

            if outcome.kind == OutcomeKind.INTERRUPT:
                checkpoint = checkpoint.advance(
                    current,
                    state,
                    next_node=current,
                    status=CheckpointStatus.SUSPENDED,
                    suspension_payload=outcome.request,
                    resume_from=checkpoint.resume_from,
                )
                await self.store.save(checkpoint)
                progress.checkpoint = checkpoint
                self.logger.info(
                    f"⏸ Suspended at {current} awaiting '{outcome.request.type}'",
                    extra={"event": "run_suspended", "latency_ms": latency_ms},
                )
                return InterruptSignal(
                    thread_id=config.thread_id, request=outcome.request, state=state
                )

            next_node = self._next_node(current, outcome)
            resume_from = checkpoint.resume_from
            if next_node == self.graph.recovery_node and current != next_node:
                resume_from = current

            if next_node != END:
                status = CheckpointStatus.ACTIVE
            elif current == self.graph.recovery_node:
                status = CheckpointStatus.FAILED
            else:
                status = CheckpointStatus.COMPLETED
                resume_from = None

            checkpoint = checkpoint.advance(
                current,
                state,
                next_node=next_node,
                status=status,
                resume_from=resume_from,
            )
            await self.store.save(checkpoint)
            progress.checkpoint = checkpoint

            self.logger.info(
                f"   ✓ {current} committed → {next_node}",
                extra={
                    "event": "node_complete",
                    "latency_ms": latency_ms,
                    "next_node": next_node,
                },
            )
            current = next_node

        status = progress.checkpoint.status
        self.logger.info(
            f"{'✅' if status == CheckpointStatus.COMPLETED else '❌'} Run finished ({status})",
            extra={"event": "run_finished", "status": str(status)},
        )
        return checkpoint.state

    def _next_node(self, current: str, outcome: NodeOutcome) -> str:
        if current == self.graph.recovery_node:
            return END
        if outcome.kind == OutcomeKind.GOTO:
            return outcome.target
        return self.graph.static_next(current)

    async def _execute_node(
        self, node_id: str, ctx: NodeContext
    ) -> tuple[NodeOutcome, WorkflowState]:
        """
        Execute one node and merge its outcome.

        Anything the node raises, an invalid routing target, or an update the
        reducers reject becomes a fault of this node.
        """
        implementation = self.node_registry[node_id]
        try:
            outcome = await implementation.execute(ctx)
            if outcome.kind == OutcomeKind.GOTO and not self._is_valid_target(outcome.target):
                raise StateUpdateError(f"Unknown routing target '{outcome.target}'")
            if outcome.kind == OutcomeKind.INTERRUPT and node_id not in self.graph.pause_nodes:
                raise StateUpdateError(f"Node '{node_id}' is not allowed to suspend")
            return outcome, merge(ctx.state, outcome.update)
        except Exception as e:
            self.logger.error(f"   ✗ {node_id} failed: {e}", exc_info=True)
            return self._contain(node_id, ctx.state, e)

    def _contain(
        self, node_id: str, state: WorkflowState, exc: BaseException
    ) -> tuple[NodeOutcome, WorkflowState]:
        update = {
            "error_log": [ErrorLogEntry.from_exception(node_id, exc)],
            "last_active_node": node_id,
        }
        if node_id == self.graph.recovery_node:
            # Nothing left to hand the fault to; end the run as failed
            return Goto(target=END, update=update), merge(state, update)
        return Goto(target=self.graph.recovery_node, update=update), merge(state, update)

    def _is_valid_target(self, target: str) -> bool:
        return target == END or self.graph.get_node(target) is not None
