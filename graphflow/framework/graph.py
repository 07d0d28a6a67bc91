# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""StateGraph - stateful graph workflow engine.

This module provides a LangGraph-style StateGraph for building cyclic,
stateful workflows whose shared state is merged through channel reducers.

Design Principles:
    - Builder/compiled split: StateGraph collects declarations, compile()
      validates them and returns an immutable CompiledGraph
    - Nodes never mutate state: they receive a read-only view and return a
      partial update; the engine alone merges updates via channel reducers
    - Single Responsibility helpers drive one run: IterationController,
      TimeoutManager, InterruptHandler, NodeExecutor, GraphCheckpointManager
    - Strictly sequential: one node executes at a time within a run, and
      merges apply in completion order

Example:
    from typing import Annotated, TypedDict
    import operator

    from graphflow.framework.graph import StateGraph, START, END

    class CounterState(TypedDict):
        count: Annotated[int, operator.add]

    async def increment(state):
        return {"count": 1}

    def should_loop(state):
        return "loop" if state["count"] < 3 else "done"

    graph = StateGraph(CounterState)
    graph.add_node("increment", increment)
    graph.add_edge(START, "increment")
    graph.add_conditional_edges("increment", should_loop, {"loop": "increment", "done": END})

    app = graph.compile()
    state = await app.invoke({})   # {"count": 3}
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from graphflow.core.log_setup import TRACE
from graphflow.framework.channels import Channel, Reducer, channels_from_schema, get_reducer
from graphflow.framework.checkpoint import CheckpointerProtocol, StateSnapshot
from graphflow.framework.config import GraphConfig
from graphflow.framework.constants import END, RESERVED_NODES, START
from graphflow.framework.errors import (
    CheckpointError,
    CheckpointReadError,
    CheckpointWriteError,
    DuplicateNodeError,
    GraphBuildError,
    GraphRuntimeError,
    InvalidUpdateError,
    NodeExecutionError,
    NodeTimeoutError,
    RecursionLimitError,
    RoutingError,
    UnknownNodeError,
    ValidationError,
)
from graphflow.framework.state import StateView, apply_update, copy_values, initial_state

logger = logging.getLogger(__name__)

State = dict[str, Any]
PartialState = Mapping[str, Any]
RouteKey = Hashable


class EdgeType(Enum):
    """Types of edges in the graph."""

    NORMAL = "normal"
    CONDITIONAL = "conditional"


class RunStatus(Enum):
    """How a run ended."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


@runtime_checkable
class NodeFunctionProtocol(Protocol):
    """Protocol for node functions.

    Node functions receive a read-only state view and return a partial
    update (or None for no change). Can be sync or async.
    """

    def __call__(
        self, state: Mapping[str, Any]
    ) -> Optional[PartialState] | Awaitable[Optional[PartialState]]: ...


@runtime_checkable
class ConditionFunctionProtocol(Protocol):
    """Protocol for condition functions.

    Condition functions receive state and synchronously return a route key.
    """

    def __call__(self, state: Mapping[str, Any]) -> RouteKey: ...


@runtime_checkable
class DebugHookProtocol(Protocol):
    """Hook called around every node execution."""

    async def before_node(self, node_id: str, state: Mapping[str, Any]) -> None: ...

    async def after_node(
        self, node_id: str, state: Mapping[str, Any], error: Optional[BaseException]
    ) -> None: ...


@dataclass
class Edge:
    """Represents the outgoing transition of a node.

    Attributes:
        source: Source node ID (or START)
        target: Target node ID for normal edges, route mapping for conditional
        edge_type: Normal or conditional
        condition: Decision function for conditional edges
    """

    source: str
    target: Union[str, dict[RouteKey, str]]
    edge_type: EdgeType = EdgeType.NORMAL
    condition: Optional[Callable[[Any], RouteKey]] = None

    @property
    def is_conditional(self) -> bool:
        return self.edge_type == EdgeType.CONDITIONAL

    def targets(self) -> list[str]:
        """All nodes this edge can lead to."""
        if isinstance(self.target, dict):
            return list(dict.fromkeys(self.target.values()))
        return [self.target]

    def get_target(self, state: Mapping[str, Any]) -> str:
        """Resolve the next node for ``state``.

        Args:
            state: Current (read-only) state

        Returns:
            Target node ID or END

        Raises:
            RoutingError: If the decision function fails, is asynchronous, or
                returns a key missing from the route mapping
        """
        if self.edge_type == EdgeType.NORMAL:
            return self.target  # type: ignore[return-value]

        assert self.condition is not None and isinstance(self.target, dict)
        routes = self.target
        try:
            route_key = self.condition(state)
        except Exception as e:
            raise RoutingError(
                self.source,
                None,
                available=list(routes),
                message=f"Decision function for '{self.source}' raised: {e}",
                cause=e,
            ) from e

        if inspect.isawaitable(route_key):
            if inspect.iscoroutine(route_key):
                route_key.close()
            raise RoutingError(
                self.source,
                route_key,
                available=list(routes),
                message=f"Decision function for '{self.source}' must be synchronous",
            )

        try:
            return routes[route_key]
        except (KeyError, TypeError):
            raise RoutingError(self.source, route_key, available=list(routes)) from None

    def describe(self) -> dict[str, Any]:
        """Describe the edge for schema output."""
        if isinstance(self.target, dict):
            target: Any = {_route_label(k): v for k, v in self.target.items()}
        else:
            target = self.target
        data: dict[str, Any] = {"type": self.edge_type.value, "target": target}
        if self.condition is not None:
            data["condition"] = getattr(self.condition, "__name__", repr(self.condition))
        return data


def _route_label(key: RouteKey) -> str:
    if isinstance(key, Enum):
        return f"{type(key).__name__}.{key.name}"
    return str(key)


@dataclass
class Node:
    """Represents a node in the graph.

    Attributes:
        id: Unique node identifier
        func: Node execution function
        metadata: Additional node metadata
    """

    id: str
    func: Callable[[Any], Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    async def execute(self, state: Mapping[str, Any]) -> Optional[PartialState]:
        """Execute node function.

        Args:
            state: Read-only view of the current state

        Returns:
            Partial state update (None means no change)
        """
        result = self.func(state)
        if inspect.isawaitable(result):
            return await result
        return result  # type: ignore[no-any-return]


@dataclass
class GraphExecutionResult:
    """Result from graph execution.

    Attributes:
        state: Final (or interrupted) state
        status: Completed or interrupted
        thread_id: Thread the run was checkpointed under
        next_node: Node that runs next on resume (END when completed)
        iterations: Number of node executions in this call
        duration: Total execution time
        node_history: Sequence of executed nodes
        checkpoint_errors: Snapshot writes that failed during the run
    """

    state: State
    status: RunStatus
    thread_id: str
    next_node: str = END
    iterations: int = 0
    duration: float = 0.0
    node_history: list[str] = field(default_factory=list)
    checkpoint_errors: list[CheckpointWriteError] = field(default_factory=list)

    @property
    def interrupted(self) -> bool:
        return self.status == RunStatus.INTERRUPTED


@dataclass
class StepEvent:
    """One completed step, as produced by the run loop.

    Attributes:
        node: Node that just executed
        update: Partial update it returned
        state: State after merging the update
        next_node: Node routed to next (END when done)
        step: Steps completed on the thread so far
    """

    node: str
    update: Optional[PartialState]
    state: State
    next_node: str
    step: int


# =============================================================================
# Graph Execution Helpers
# =============================================================================


class IterationController:
    """Controls graph iteration limits.

    Bounds total node executions and per-node revisits to stop runaway loops.
    """

    def __init__(self, max_iterations: int, recursion_limit: int):
        """Initialize iteration controller.

        Args:
            max_iterations: Maximum total iterations allowed
            recursion_limit: Maximum visits to same node (recursion depth)
        """
        self.max_iterations = max_iterations
        self.recursion_limit = recursion_limit
        self.iterations = 0
        self.visited_count: dict[str, int] = {}

    def should_continue(self, current_node: str) -> tuple[bool, Optional[str]]:
        """Check if execution should continue.

        Args:
            current_node: Current node being executed

        Returns:
            Tuple of (should_continue, error_message)
            - (True, None) if execution should continue
            - (False, error_message) if limit exceeded
        """
        self.iterations += 1
        if self.iterations > self.max_iterations:
            return False, f"Max iterations ({self.max_iterations}) exceeded"

        self.visited_count[current_node] = self.visited_count.get(current_node, 0) + 1
        if self.visited_count[current_node] > self.recursion_limit:
            return False, (
                f"Recursion limit ({self.recursion_limit}) exceeded at node: {current_node}"
            )

        return True, None

    def reset(self) -> None:
        """Reset iteration state."""
        self.iterations = 0
        self.visited_count.clear()


class TimeoutManager:
    """Tracks elapsed time and enforces the run and per-node budgets."""

    def __init__(self, timeout: Optional[float], node_timeout: Optional[float] = None):
        """Initialize timeout manager.

        Args:
            timeout: Overall execution timeout in seconds (None = no limit)
            node_timeout: Timeout for one node execution (None = no limit)
        """
        self.timeout = timeout
        self.node_timeout = node_timeout
        self.start_time: Optional[float] = None

    def start(self) -> None:
        """Start timeout tracking."""
        self.start_time = time.monotonic()

    def get_remaining(self) -> Optional[float]:
        """Get remaining time before the run times out.

        Returns:
            Remaining seconds, or None if no timeout configured
        """
        if self.timeout is None or self.start_time is None:
            return None
        return self.timeout - (time.monotonic() - self.start_time)

    def is_expired(self) -> bool:
        remaining = self.get_remaining()
        return remaining is not None and remaining <= 0

    def node_budget(self) -> Optional[float]:
        """Time available for the next node: the tighter of both limits."""
        budgets = [b for b in (self.get_remaining(), self.node_timeout) if b is not None]
        return min(budgets) if budgets else None

    def get_elapsed(self) -> float:
        """Get elapsed time since start.

        Returns:
            Elapsed seconds, or 0.0 if not started
        """
        if self.start_time is None:
            return 0.0
        return time.monotonic() - self.start_time


class InterruptHandler:
    """Handles graph interrupts for human-in-the-loop workflows."""

    def __init__(
        self,
        interrupt_before: Iterable[str],
        interrupt_after: Iterable[str],
        resume_node: Optional[str] = None,
    ):
        """Initialize interrupt handler.

        Args:
            interrupt_before: Node IDs to interrupt before execution
            interrupt_after: Node IDs to interrupt after execution
            resume_node: Node the run resumes at after a before-interrupt;
                its before-interrupt is skipped once
        """
        self.interrupt_before = set(interrupt_before)
        self.interrupt_after = set(interrupt_after)
        self._resume_node = resume_node

    def should_interrupt_before(self, node_id: str) -> bool:
        """Check if should interrupt before node execution."""
        if self._resume_node is not None:
            resume_node, self._resume_node = self._resume_node, None
            if resume_node == node_id:
                return False
        return node_id in self.interrupt_before

    def should_interrupt_after(self, node_id: str) -> bool:
        """Check if should interrupt after node execution."""
        return node_id in self.interrupt_after


class NodeExecutor:
    """Executes individual graph nodes.

    Handles node lookup, the read-only state view, timeouts and error
    wrapping. A node that is already running when the caller cancels is
    allowed to finish; its update is discarded and the cancellation
    propagates.
    """

    def __init__(self, nodes: Mapping[str, Node], copy_state: bool):
        """Initialize node executor.

        Args:
            nodes: Node registry
            copy_state: Hand nodes a deep copy instead of a live read-only view
        """
        self.nodes = nodes
        self.copy_state = copy_state

    async def execute(
        self,
        node_id: str,
        state: State,
        timeout: Optional[float] = None,
    ) -> Optional[PartialState]:
        """Execute a node.

        Args:
            node_id: ID of node to execute
            state: Current state (never mutated)
            timeout: Seconds the node may run (None = no limit)

        Returns:
            The node's partial update

        Raises:
            NodeExecutionError: If the node raises or times out
            InvalidUpdateError: If the state cannot be copied for the node
            asyncio.CancelledError: If the caller cancelled the run
        """
        node = self.nodes[node_id]
        try:
            view = StateView(state, copy_state=self.copy_state)
        except InvalidUpdateError as e:
            e.node = node_id
            e.details["node"] = node_id
            raise
        task = asyncio.ensure_future(self._call(node, view, timeout))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.info(f"Cancellation requested during node '{node_id}'; letting it finish")
                await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Node '{node_id}' failed after cancellation: {task.exception()}")
            raise

    async def _call(
        self,
        node: Node,
        view: StateView,
        timeout: Optional[float],
    ) -> Optional[PartialState]:
        try:
            if timeout is not None:
                if timeout <= 0:
                    raise NodeTimeoutError(node.id, timeout)
                try:
                    return await asyncio.wait_for(node.execute(view), timeout=timeout)
                except asyncio.TimeoutError:
                    raise NodeTimeoutError(node.id, timeout) from None
            return await node.execute(view)
        except NodeExecutionError as e:
            if e.node is None:
                e.node = node.id
                e.details["node"] = node.id
            raise
        except Exception as e:
            raise NodeExecutionError(
                f"Node '{node.id}' failed: {e}",
                node=node.id,
                cause=e,
            ) from e


class GraphCheckpointManager:
    """Loads and saves snapshots for one run.

    Write failures are wrapped in CheckpointWriteError and reported back to
    the run loop. They abort the run when ``raise_on_write_error`` is set, and
    always for the snapshot an interrupt pauses on.
    """

    def __init__(
        self,
        checkpointer: Optional[CheckpointerProtocol],
        raise_on_write_error: bool = False,
    ):
        """Initialize checkpoint manager.

        Args:
            checkpointer: Checkpointer for persistence (None = no checkpointing)
            raise_on_write_error: Raise instead of recording failed writes
        """
        self.checkpointer = checkpointer
        self.raise_on_write_error = raise_on_write_error
        self.write_errors: list[CheckpointWriteError] = []

    async def load(self, thread_id: str) -> Optional[StateSnapshot]:
        """Load the thread's latest snapshot, if a checkpointer is configured.

        Raises:
            CheckpointReadError: If the store fails
        """
        if self.checkpointer is None:
            return None
        try:
            return await self.checkpointer.get(thread_id)
        except Exception as e:
            raise CheckpointReadError(
                f"Failed to load checkpoint for thread '{thread_id}': {e}",
                thread_id=thread_id,
                cause=e,
            ) from e

    async def save(
        self,
        thread_id: str,
        node_id: str,
        state: State,
        step: int,
        metadata: Optional[dict[str, Any]] = None,
        required: bool = False,
    ) -> Optional[StateSnapshot]:
        """Save a snapshot.

        Args:
            thread_id: Thread ID for checkpoint
            node_id: Node that runs next on resume
            state: Current state to checkpoint
            step: Steps completed on the thread
            metadata: Extra snapshot metadata
            required: The run pauses on this snapshot, so a failed write
                always raises

        Returns:
            The snapshot written, or None if nothing was written

        Raises:
            CheckpointWriteError: If the write fails and either
                ``required`` or ``raise_on_write_error`` is set
        """
        if self.checkpointer is None:
            return None

        snapshot = StateSnapshot(
            thread_id=thread_id,
            node=node_id,
            state=state,
            step=step,
            metadata=metadata or {},
        )
        try:
            await self.checkpointer.put(thread_id, snapshot)
        except Exception as e:
            error = CheckpointWriteError(
                f"Failed to save checkpoint for thread '{thread_id}' at step {step}: {e}",
                thread_id=thread_id,
                cause=e,
            )
            if required or self.raise_on_write_error:
                raise error from e
            logger.warning(f"{error.message} (run continues; resume point not updated)")
            self.write_errors.append(error)
            return None

        logger.debug(f"Checkpoint saved: thread={thread_id} step={step} next={node_id}")
        return snapshot


@dataclass
class _RunContext:
    """Mutable bookkeeping shared between the run loop and its consumers."""

    thread_id: str
    state: State = field(default_factory=dict)
    status: RunStatus = RunStatus.COMPLETED
    next_node: str = END
    node_history: list[str] = field(default_factory=list)
    iterations: int = 0
    started: float = field(default_factory=time.monotonic)
    checkpoint_errors: list[CheckpointWriteError] = field(default_factory=list)


# =============================================================================
# Compiled Graph
# =============================================================================


class CompiledGraph:
    """Compiled graph ready for execution.

    Immutable after construction; safe to share across concurrent runs,
    each of which owns its own state end-to-end.
    """

    def __init__(
        self,
        nodes: dict[str, Node],
        edges: dict[str, Edge],
        channels: dict[str, Channel],
        config: Optional[GraphConfig] = None,
    ):
        """Initialize compiled graph.

        Args:
            nodes: Node registry
            edges: Outgoing edge per source node (START included)
            channels: Declared channels; empty means keys are created on
                first write with replace semantics
            config: Execution configuration
        """
        self._nodes = dict(nodes)
        self._edges = dict(edges)
        self._channels = dict(channels)
        self._config = config or GraphConfig()
        self._debug_hook: Optional[DebugHookProtocol] = None

    @property
    def nodes(self) -> Mapping[str, Node]:
        return dict(self._nodes)

    @property
    def channels(self) -> Mapping[str, Channel]:
        return dict(self._channels)

    @property
    def config(self) -> GraphConfig:
        return self._config

    @property
    def checkpointer(self) -> Optional[CheckpointerProtocol]:
        return self._config.checkpoint.checkpointer

    def set_debug_hook(self, hook: Optional[DebugHookProtocol]) -> None:
        """Set debug hook for execution.

        Args:
            hook: Object with before_node/after_node coroutines, or None
        """
        self._debug_hook = hook

    # -------------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------------

    def _merge(self, state: State, update: Optional[PartialState], node: Optional[str] = None) -> State:
        channels: Mapping[str, Channel] = self._channels
        if not channels and isinstance(update, Mapping):
            # Undeclared graphs treat every written key as a replace channel
            channels = {key: Channel(name=key) for key in update}
        new_state = apply_update(channels, state, update, node=node)
        logger.log(TRACE, f"State after {node or 'input'}: {new_state!r}")
        return new_state

    def _initial_state(self, values: Optional[PartialState]) -> State:
        if self._channels:
            return initial_state(self._channels, values)
        return self._merge({}, values)

    def _view(self, state: State, config: GraphConfig) -> StateView:
        return StateView(state, copy_state=config.performance.copy_state)

    def _get_next_node(self, current_node: str, state: State, config: GraphConfig) -> str:
        """Determine next node based on the outgoing edge and state.

        Args:
            current_node: Current node ID (or START)
            state: Current state
            config: Execution configuration

        Returns:
            Next node ID or END
        """
        edge = self._edges[current_node]
        next_node = edge.get_target(self._view(state, config) if edge.is_conditional else state)
        logger.debug(f"Routing {current_node} -> {next_node}")
        return next_node

    def _resolve_config(
        self,
        config: Optional[GraphConfig],
        interrupt_before: Optional[Sequence[str]],
        interrupt_after: Optional[Sequence[str]],
    ) -> GraphConfig:
        exec_config = config or self._config
        compiled_checkpointer = self._config.checkpoint.checkpointer
        if config is not None and config.checkpoint.checkpointer is None and compiled_checkpointer:
            # Per-call configs keep the compiled checkpointer
            exec_config = config.with_overrides(checkpointer=compiled_checkpointer)
        if interrupt_before is None and interrupt_after is None:
            return exec_config
        for node_id in [*(interrupt_before or []), *(interrupt_after or [])]:
            if node_id not in self._nodes:
                raise UnknownNodeError(node_id)
        return exec_config.with_overrides(
            interrupt_before=interrupt_before,
            interrupt_after=interrupt_after,
        )

    # -------------------------------------------------------------------------
    # Run loop
    # -------------------------------------------------------------------------

    async def _run(
        self,
        input_state: Optional[PartialState],
        ctx: _RunContext,
        exec_config: GraphConfig,
        resume: bool,
        hook: Optional[DebugHookProtocol],
    ) -> AsyncIterator[StepEvent]:
        """Drive one run, yielding after every completed step.

        Args:
            input_state: Caller values folded into the starting state
            ctx: Run bookkeeping, updated in place
            exec_config: Execution configuration
            resume: Whether to look for a snapshot under ``ctx.thread_id``
            hook: Optional debug hook
        """
        thread_id = ctx.thread_id
        graph_label = exec_config.observability.graph_id or "run"
        checkpoint_manager = GraphCheckpointManager(
            checkpointer=exec_config.checkpoint.checkpointer,
            raise_on_write_error=exec_config.checkpoint.raise_on_write_error,
        )
        ctx.checkpoint_errors = checkpoint_manager.write_errors
        iteration_controller = IterationController(
            max_iterations=exec_config.execution.max_iterations,
            recursion_limit=exec_config.execution.recursion_limit,
        )
        timeout_manager = TimeoutManager(
            timeout=exec_config.execution.timeout,
            node_timeout=exec_config.execution.node_timeout,
        )

        snapshot = await checkpoint_manager.load(thread_id) if resume else None
        resume_node: Optional[str] = None

        if snapshot is not None and not snapshot.is_complete:
            logger.info(
                f"Resuming thread {thread_id} at node '{snapshot.node}' (step {snapshot.step})"
            )
            if snapshot.node not in self._nodes:
                raise CheckpointError(
                    f"Checkpoint for thread '{thread_id}' points at unknown node '{snapshot.node}'",
                    thread_id=thread_id,
                )
            state = self._merge(snapshot.state, input_state) if input_state else snapshot.state
            current_node = snapshot.node
            step = snapshot.step
            if snapshot.interrupt == "before":
                resume_node = current_node
        else:
            if snapshot is not None:
                logger.info(f"Thread {thread_id} finished earlier; starting a new pass")
                state = self._merge(snapshot.state, input_state)
                step = snapshot.step
            else:
                state = self._initial_state(input_state)
                step = 0
            current_node = self._get_next_node(START, state, exec_config)

        interrupt_handler = InterruptHandler(
            interrupt_before=exec_config.interrupt.interrupt_before,
            interrupt_after=exec_config.interrupt.interrupt_after,
            resume_node=resume_node,
        )
        node_executor = NodeExecutor(
            nodes=self._nodes,
            copy_state=exec_config.performance.copy_state,
        )

        ctx.state = state
        ctx.next_node = current_node
        timeout_manager.start()

        try:
            while current_node != END:
                should_continue, error = iteration_controller.should_continue(current_node)
                if not should_continue:
                    raise RecursionLimitError(error or "Iteration limit reached", node=current_node)
                ctx.iterations = iteration_controller.iterations

                if interrupt_handler.should_interrupt_before(current_node):
                    logger.info(f"Interrupt before node: {current_node}")
                    self._warn_unresumable(exec_config, current_node)
                    await checkpoint_manager.save(
                        thread_id,
                        current_node,
                        state,
                        step,
                        {"interrupt": "before"},
                        required=True,
                    )
                    ctx.status = RunStatus.INTERRUPTED
                    return

                if timeout_manager.is_expired():
                    raise NodeTimeoutError(current_node, timeout_manager.timeout)

                if hook is not None:
                    await hook.before_node(current_node, self._view(state, exec_config))

                logger.debug(f"Executing node: {current_node}")
                node_start = time.monotonic()
                try:
                    update = await node_executor.execute(
                        current_node, state, timeout=timeout_manager.node_budget()
                    )
                    state = self._merge(state, update, node=current_node)
                except GraphRuntimeError as e:
                    if hook is not None:
                        await hook.after_node(current_node, self._view(state, exec_config), e)
                    raise

                if hook is not None:
                    await hook.after_node(current_node, self._view(state, exec_config), None)

                step += 1
                ctx.state = state
                ctx.node_history.append(current_node)
                logger.debug(
                    f"Executed node: {current_node} ({time.monotonic() - node_start:.3f}s)"
                )

                next_node = self._get_next_node(current_node, state, exec_config)
                interrupt_after = interrupt_handler.should_interrupt_after(current_node)
                metadata: dict[str, Any] = {"completed_node": current_node}
                if interrupt_after:
                    metadata["interrupt"] = "after"
                await checkpoint_manager.save(
                    thread_id,
                    next_node,
                    state,
                    step,
                    metadata,
                    required=interrupt_after and next_node != END,
                )
                ctx.next_node = next_node

                yield StepEvent(
                    node=current_node,
                    update=update,
                    state=state,
                    next_node=next_node,
                    step=step,
                )

                if interrupt_after and next_node != END:
                    logger.info(f"Interrupt after node: {current_node}")
                    self._warn_unresumable(exec_config, current_node)
                    ctx.status = RunStatus.INTERRUPTED
                    return

                current_node = next_node

            ctx.status = RunStatus.COMPLETED
            logger.info(
                f"Graph {graph_label} completed: thread={thread_id} "
                f"steps={len(ctx.node_history)} duration={timeout_manager.get_elapsed():.3f}s"
            )

        except (GraphRuntimeError, CheckpointWriteError) as e:
            logger.error(
                f"Graph {graph_label} failed at node '{current_node}' "
                f"(thread {thread_id}): {e.message}"
            )
            raise

    def _warn_unresumable(self, config: GraphConfig, node_id: str) -> None:
        if config.checkpoint.checkpointer is None:
            logger.warning(
                f"Interrupt at '{node_id}' without a checkpointer; the run cannot be resumed"
            )

    def _prepare(
        self,
        thread_id: Optional[str],
        config: Optional[GraphConfig],
        interrupt_before: Optional[Sequence[str]],
        interrupt_after: Optional[Sequence[str]],
    ) -> tuple[_RunContext, GraphConfig, bool]:
        exec_config = self._resolve_config(config, interrupt_before, interrupt_after)
        resume = thread_id is not None
        ctx = _RunContext(thread_id=thread_id or uuid.uuid4().hex)
        return ctx, exec_config, resume

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def execute(
        self,
        input_state: Optional[PartialState] = None,
        *,
        thread_id: Optional[str] = None,
        interrupt_before: Optional[Sequence[str]] = None,
        interrupt_after: Optional[Sequence[str]] = None,
        config: Optional[GraphConfig] = None,
        debug_hook: Optional[DebugHookProtocol] = None,
    ) -> GraphExecutionResult:
        """Execute the graph and report how the run went.

        Args:
            input_state: Initial partial state
            thread_id: Thread ID for checkpointing; an existing snapshot for
                it is resumed
            interrupt_before: Nodes to pause before (overrides config)
            interrupt_after: Nodes to pause after (overrides config)
            config: Override execution config; when it has no checkpointer
                the compiled one is still used
            debug_hook: Optional hook called around each node

        Returns:
            GraphExecutionResult with final state

        Raises:
            RoutingError: A conditional edge returned an unmapped key
            NodeExecutionError: A node failed or timed out
            InvalidUpdateError: An update could not be merged, or state
                could not be copied for a node
            RecursionLimitError: Iteration limits were exceeded
            CheckpointWriteError: The snapshot an interrupt pauses on could
                not be written
        """
        ctx, exec_config, resume = self._prepare(
            thread_id, config, interrupt_before, interrupt_after
        )
        hook = debug_hook or self._debug_hook

        async for _ in self._run(input_state, ctx, exec_config, resume, hook):
            pass

        return GraphExecutionResult(
            state=ctx.state,
            status=ctx.status,
            thread_id=ctx.thread_id,
            next_node=ctx.next_node,
            iterations=ctx.iterations,
            duration=time.monotonic() - ctx.started,
            node_history=ctx.node_history,
            checkpoint_errors=list(ctx.checkpoint_errors),
        )

    async def invoke(
        self,
        input_state: Optional[PartialState] = None,
        *,
        thread_id: Optional[str] = None,
        interrupt_before: Optional[Sequence[str]] = None,
        interrupt_after: Optional[Sequence[str]] = None,
        config: Optional[GraphConfig] = None,
        debug_hook: Optional[DebugHookProtocol] = None,
    ) -> State:
        """Execute the graph and return the final state.

        Takes the same arguments as :meth:`execute`. When the run is
        interrupted, the state at the interrupt point is returned and the
        run can be resumed by invoking again with the same ``thread_id``.
        """
        result = await self.execute(
            input_state,
            thread_id=thread_id,
            interrupt_before=interrupt_before,
            interrupt_after=interrupt_after,
            config=config,
            debug_hook=debug_hook,
        )
        return result.state

    async def stream(
        self,
        input_state: Optional[PartialState] = None,
        *,
        stream_mode: str = "values",
        thread_id: Optional[str] = None,
        interrupt_before: Optional[Sequence[str]] = None,
        interrupt_after: Optional[Sequence[str]] = None,
        config: Optional[GraphConfig] = None,
        debug_hook: Optional[DebugHookProtocol] = None,
    ) -> AsyncIterator[Any]:
        """Stream execution, yielding once per completed step.

        Args:
            input_state: Initial partial state
            stream_mode: ``"values"`` yields the full state after each step;
                ``"updates"`` yields ``{node_id: partial_update}``
            thread_id: Thread ID for checkpointing and resume

        Yields:
            State dicts or per-node updates, depending on ``stream_mode``
        """
        if stream_mode not in ("values", "updates"):
            raise ValueError(f"stream_mode must be 'values' or 'updates', got {stream_mode!r}")

        ctx, exec_config, resume = self._prepare(
            thread_id, config, interrupt_before, interrupt_after
        )
        hook = debug_hook or self._debug_hook
        copy_state = exec_config.performance.copy_state

        async for event in self._run(input_state, ctx, exec_config, resume, hook):
            if stream_mode == "values":
                yield copy_values(event.state) if copy_state else dict(event.state)
            else:
                update = dict(event.update) if event.update else {}
                yield {event.node: copy_values(update, event.node) if copy_state else update}

    async def batch(
        self,
        inputs: Sequence[Optional[PartialState]],
        *,
        thread_ids: Optional[Sequence[Optional[str]]] = None,
        max_concurrency: Optional[int] = None,
        config: Optional[GraphConfig] = None,
    ) -> list[State]:
        """Run independent invocations concurrently.

        Each input gets its own run and state; results are combined by the
        caller. This is how independent branches run side by side.

        Args:
            inputs: One initial partial state per run
            thread_ids: Optional thread ID per run (same length as inputs)
            max_concurrency: Maximum runs in flight (None = unbounded)
            config: Override execution config for every run

        Returns:
            Final states, in input order

        Raises:
            GraphFlowError: The first failure; unfinished runs are cancelled
                (a node already running finishes, its update is discarded)
        """
        if thread_ids is not None and len(thread_ids) != len(inputs):
            raise ValueError("thread_ids must have the same length as inputs")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        ids = list(thread_ids) if thread_ids is not None else [None] * len(inputs)

        async def run_one(values: Optional[PartialState], tid: Optional[str]) -> State:
            if semaphore is None:
                return await self.invoke(values, thread_id=tid, config=config)
            async with semaphore:
                return await self.invoke(values, thread_id=tid, config=config)

        tasks = [asyncio.ensure_future(run_one(v, t)) for v, t in zip(inputs, ids)]
        try:
            return list(await asyncio.gather(*tasks))
        finally:
            pending = [task for task in tasks if not task.done()]
            if pending:
                logger.info(f"Cancelling {len(pending)} unfinished batch runs")
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Thread state
    # -------------------------------------------------------------------------

    def _require_checkpointer(self) -> CheckpointerProtocol:
        checkpointer = self._config.checkpoint.checkpointer
        if checkpointer is None:
            raise CheckpointError("This graph was compiled without a checkpointer")
        return checkpointer

    async def get_state(self, thread_id: str) -> Optional[StateSnapshot]:
        """Return the latest snapshot for a thread, or None."""
        return await self._require_checkpointer().get(thread_id)

    async def update_state(self, thread_id: str, values: PartialState) -> StateSnapshot:
        """Fold values into a thread's stored state through the reducers.

        The pending node (and any interrupt marker) is kept, so the next
        invoke resumes where the thread left off, with the edited state.

        Args:
            thread_id: Thread to edit
            values: Partial update to merge

        Returns:
            The snapshot written
        """
        checkpointer = self._require_checkpointer()
        snapshot = await checkpointer.get(thread_id)
        if snapshot is None:
            state = self._initial_state(values)
            node, step, metadata = self._get_next_node(START, state, self._config), 0, {}
        else:
            state = self._merge(snapshot.state, values)
            node, step = snapshot.node, snapshot.step
            metadata = {k: v for k, v in snapshot.metadata.items() if k == "interrupt"}
        metadata["source"] = "update"

        new_snapshot = StateSnapshot(
            thread_id=thread_id, node=node, state=state, step=step, metadata=metadata
        )
        await checkpointer.put(thread_id, new_snapshot)
        logger.info(f"Updated state for thread {thread_id} (next node: {node})")
        return new_snapshot

    def get_graph_schema(self) -> dict[str, Any]:
        """Get graph structure as dictionary.

        Returns:
            Dictionary describing channels, nodes and edges
        """
        return {
            "nodes": list(self._nodes.keys()),
            "channels": [channel.describe() for channel in self._channels.values()],
            "edges": {src: edge.describe() for src, edge in self._edges.items()},
            "entry_point": self._edges[START].describe(),
        }


# =============================================================================
# Builder
# =============================================================================


class StateGraph:
    """StateGraph builder for creating stateful workflows.

    Declarations can be made in any order; compile() validates the whole
    graph and returns an immutable CompiledGraph.

    Example:
        graph = StateGraph(AgentState)
        graph.add_node("analyze", analyze_func)
        graph.add_node("execute", execute_func)
        graph.add_edge(START, "analyze")
        graph.add_edge("analyze", "execute")
        graph.add_conditional_edges(
            "execute",
            should_retry,
            {"retry": "analyze", "done": END}
        )

        app = graph.compile()
        state = await app.invoke(initial_state)
    """

    def __init__(
        self,
        state_schema: Optional[type[Any]] = None,
        *,
        channels: Union[Iterable[Channel], Mapping[str, Channel], None] = None,
    ):
        """Initialize StateGraph.

        Args:
            state_schema: Optional TypedDict whose annotations declare channels
            channels: Explicit channels (in addition to the schema's)
        """
        self._state_schema = state_schema
        self._channels: dict[str, Channel] = (
            channels_from_schema(state_schema) if state_schema is not None else {}
        )
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, list[Edge]] = {}

        if channels is not None:
            values = channels.values() if isinstance(channels, Mapping) else channels
            for channel in values:
                self._register_channel(channel)

    def _register_channel(self, channel: Channel) -> None:
        if channel.name in self._channels:
            raise GraphBuildError(f"Channel '{channel.name}' already exists")
        self._channels[channel.name] = channel

    def add_channel(
        self,
        name: str,
        reducer: Optional[Reducer] = None,
        **kwargs: Any,
    ) -> "StateGraph":
        """Declare a state channel.

        Args:
            name: Channel name
            reducer: ``(current, incoming) -> value``; defaults to replace
            **kwargs: ``default=`` value or ``default_factory=`` callable

        Returns:
            Self for chaining
        """
        self._register_channel(Channel.create(name, reducer, **kwargs))
        logger.debug(f"Added channel: {name}")
        return self

    def add_node(
        self,
        node_id: str,
        func: Callable[[Any], Any],
        **metadata: Any,
    ) -> "StateGraph":
        """Add a node to the graph.

        Args:
            node_id: Unique node identifier
            func: Node execution function (sync or async)
            **metadata: Additional metadata

        Returns:
            Self for chaining

        Raises:
            DuplicateNodeError: If the node exists or the name is reserved
        """
        if not isinstance(node_id, str) or not node_id:
            raise GraphBuildError(f"Node name must be a non-empty string, got {node_id!r}")
        if node_id in RESERVED_NODES:
            raise DuplicateNodeError(node_id, reserved=True)
        if node_id in self._nodes:
            raise DuplicateNodeError(node_id)
        if not callable(func):
            raise GraphBuildError(f"Node '{node_id}' function must be callable")

        self._nodes[node_id] = Node(id=node_id, func=func, metadata=metadata)
        logger.debug(f"Added node: {node_id}")
        return self

    def _check_source(self, source: str) -> None:
        if source != START and source not in self._nodes:
            raise UnknownNodeError(source)

    def add_edge(self, source: str, target: str) -> "StateGraph":
        """Add a normal edge between nodes.

        Args:
            source: Source node ID (or START)
            target: Target node ID (or END)

        Returns:
            Self for chaining

        Raises:
            UnknownNodeError: If source is neither START nor a registered node
        """
        self._check_source(source)
        self._edges.setdefault(source, []).append(
            Edge(source=source, target=target, edge_type=EdgeType.NORMAL)
        )
        logger.debug(f"Added edge: {source} -> {target}")
        return self

    def add_conditional_edges(
        self,
        source: str,
        condition: Callable[[Any], RouteKey],
        routes: Union[Mapping[RouteKey, str], Sequence[str]],
    ) -> "StateGraph":
        """Add a conditional edge with multiple branches.

        Args:
            source: Source node ID (or START)
            condition: Synchronous function returning a route key
            routes: Mapping from route keys to target node IDs, or a list of
                node IDs that map to themselves

        Returns:
            Self for chaining

        Raises:
            UnknownNodeError: If source is neither START nor a registered node
        """
        self._check_source(source)
        if not callable(condition):
            raise GraphBuildError(f"Condition for '{source}' must be callable")
        if isinstance(routes, Mapping):
            route_map = dict(routes)
        else:
            route_map = {target: target for target in routes}

        self._edges.setdefault(source, []).append(
            Edge(
                source=source,
                target=route_map,
                edge_type=EdgeType.CONDITIONAL,
                condition=condition,
            )
        )
        logger.debug(f"Added conditional edge: {source} -> {list(route_map.values())}")
        return self

    def add_conditional_edge(
        self,
        source: str,
        condition: Callable[[Any], RouteKey],
        branches: Union[Mapping[RouteKey, str], Sequence[str]],
    ) -> "StateGraph":
        """Alias of :meth:`add_conditional_edges`."""
        return self.add_conditional_edges(source, condition, branches)

    def set_entry_point(self, node_id: str) -> "StateGraph":
        """Set the entry point node (adds edge from START)."""
        if node_id not in self._nodes:
            raise UnknownNodeError(node_id)
        return self.add_edge(START, node_id)

    def set_finish_point(self, node_id: str) -> "StateGraph":
        """Set a node as finish point (adds edge to END)."""
        return self.add_edge(node_id, END)

    def compile(
        self,
        checkpointer: Optional[CheckpointerProtocol] = None,
        *,
        config: Optional[GraphConfig] = None,
        **config_kwargs: Any,
    ) -> CompiledGraph:
        """Compile the graph for execution.

        Args:
            checkpointer: Optional checkpointer for persistence
            config: Base execution config (defaults come from settings)
            **config_kwargs: Flat config options (max_iterations, node_timeout,
                interrupt_before, ...)

        Returns:
            CompiledGraph ready for execution

        Raises:
            ValidationError: If graph is invalid
        """
        errors = self._validate()
        if errors:
            for error in errors:
                logger.debug(f"Graph validation error: {error}")
            raise ValidationError(errors)

        if checkpointer is not None:
            config_kwargs["checkpointer"] = checkpointer
        exec_config = GraphConfig.from_legacy(base=config, **config_kwargs)

        for node_id in [
            *exec_config.interrupt.interrupt_before,
            *exec_config.interrupt.interrupt_after,
        ]:
            if node_id not in self._nodes:
                raise ValidationError([f"Interrupt node '{node_id}' not found"])

        logger.debug(
            f"Compiled graph: {len(self._nodes)} nodes, {len(self._channels)} channels"
        )
        return CompiledGraph(
            nodes=self._nodes,
            edges={source: edges[0] for source, edges in self._edges.items()},
            channels=self._channels,
            config=exec_config,
        )

    def _validate(self) -> list[str]:
        """Validate graph structure.

        Returns:
            List of error messages
        """
        errors: list[str] = []

        if not self._nodes:
            errors.append("Graph has no nodes")

        if not self._edges.get(START):
            errors.append("No entry point set (add an edge from START)")

        for source, edges in self._edges.items():
            label = "START" if source == START else f"Node '{source}'"
            if len(edges) > 1:
                kinds = sorted({edge.edge_type.value for edge in edges})
                errors.append(
                    f"{label} has {len(edges)} conflicting outgoing edge sets ({', '.join(kinds)}); "
                    "a node may have one static edge or one set of conditional edges"
                )

            for edge in edges:
                errors.extend(self._validate_edge(edge))

        for node_id in self._nodes:
            if node_id not in self._edges:
                errors.append(f"Node '{node_id}' has no outgoing edges")

        reachable = self._find_reachable()
        for node_id in self._nodes:
            if node_id not in reachable:
                errors.append(f"Node '{node_id}' is unreachable")

        if self._edges.get(START) and END not in reachable:
            errors.append("No path reaches END")

        return errors

    def _validate_edge(self, edge: Edge) -> list[str]:
        errors: list[str] = []
        if isinstance(edge.target, dict):
            if not edge.target:
                errors.append(f"Conditional edge from '{edge.source}' has no routes")
            for key, target in edge.target.items():
                if target == START or (target != END and target not in self._nodes):
                    errors.append(
                        f"Conditional target '{target}' not found (route: {_route_label(key)})"
                    )
            errors.extend(self._check_enum_exhaustive(edge))
        elif edge.target == START or (edge.target != END and edge.target not in self._nodes):
            errors.append(f"Edge target '{edge.target}' not found")
        return errors

    @staticmethod
    def _check_enum_exhaustive(edge: Edge) -> list[str]:
        """Route keys drawn from one Enum must cover every member."""
        keys = list(edge.target) if isinstance(edge.target, dict) else []
        if not keys or not all(isinstance(k, Enum) for k in keys):
            return []
        enum_types = {type(k) for k in keys}
        if len(enum_types) != 1:
            return []
        enum_type = enum_types.pop()
        missing = [member for member in enum_type if member not in edge.target]  # type: ignore[operator]
        if not missing:
            return []
        names = ", ".join(_route_label(m) for m in missing)
        return [f"Conditional edge from '{edge.source}' does not map route keys: {names}"]

    def _find_reachable(self) -> set[str]:
        """Find all nodes (and END) reachable from START."""
        reachable: set[str] = set()
        to_visit = [target for edge in self._edges.get(START, []) for target in edge.targets()]

        while to_visit:
            node_id = to_visit.pop()
            if node_id in reachable:
                continue
            reachable.add(node_id)
            if node_id == END:
                continue
            for edge in self._edges.get(node_id, []):
                to_visit.extend(edge.targets())

        return reachable

    @classmethod
    def from_schema(
        cls,
        schema: Union[dict[str, Any], str],
        state_schema: Optional[type[Any]] = None,
        node_registry: Optional[dict[str, Callable[..., Any]]] = None,
        condition_registry: Optional[dict[str, Callable[..., Any]]] = None,
    ) -> "StateGraph":
        """Create StateGraph from schema dictionary or YAML string.

        Args:
            schema: Either a dictionary schema or YAML string containing:
                - nodes: List of node definitions with id and type
                - edges: List of edge definitions with source, target, type
                - entry_point: Starting node ID
                - Optional: channels (name, reducer, default)
            state_schema: Optional TypedDict type declaring channels
            node_registry: Maps node function names to callables
            condition_registry: Maps condition function names to callables

        Returns:
            StateGraph instance ready for compilation

        Raises:
            ValidationError: If schema is invalid or references unknown names

        Example with YAML:
            yaml_schema = \"""
            channels:
              - name: attempts
                reducer: add
                default: 0
            nodes:
              - id: analyze
                type: function
                func: analyze_task
              - id: execute
                type: function
                func: execute_task
            edges:
              - source: analyze
                target: execute
                type: normal
              - source: execute
                target:
                  retry: analyze
                  done: __end__
                type: conditional
                condition: should_retry
            entry_point: analyze
            \"""

            graph = StateGraph.from_schema(
                yaml_schema,
                node_registry={"analyze_task": analyze, "execute_task": execute},
                condition_registry={"should_retry": should_retry},
            )
        """
        import yaml

        if isinstance(schema, str):
            try:
                schema_dict = yaml.safe_load(schema)
            except yaml.YAMLError as e:
                raise ValidationError([f"Invalid YAML schema: {e}"], cause=e) from e
        else:
            schema_dict = schema

        if not isinstance(schema_dict, dict):
            raise ValidationError(["Schema must be a mapping"])

        missing_fields = [f for f in ("nodes", "edges", "entry_point") if f not in schema_dict]
        if missing_fields:
            raise ValidationError([f"Schema missing required fields: {missing_fields}"])

        node_registry = node_registry or {}
        condition_registry = condition_registry or {}

        graph = cls(state_schema=state_schema)

        for channel_def in schema_dict.get("channels") or []:
            if not isinstance(channel_def, dict) or not channel_def.get("name"):
                raise ValidationError([f"Invalid channel definition: {channel_def}"])
            try:
                reducer = get_reducer(channel_def.get("reducer", "replace"))
            except KeyError as e:
                raise ValidationError([str(e.args[0])]) from e
            kwargs = {"default": channel_def["default"]} if "default" in channel_def else {}
            graph.add_channel(channel_def["name"], reducer, **kwargs)

        for node_def in schema_dict["nodes"]:
            if not isinstance(node_def, dict):
                raise ValidationError([f"Invalid node definition: {node_def}"])

            node_id = node_def.get("id")
            if not node_id:
                raise ValidationError(["Node definition must have 'id' field"])

            node_type = node_def.get("type", "function")
            if node_type == "function":
                func_name = node_def.get("func")
                if not func_name:
                    raise ValidationError([f"Function node '{node_id}' must specify 'func'"])
                if func_name not in node_registry:
                    raise ValidationError(
                        [
                            f"Node function '{func_name}' not found in node_registry. "
                            f"Available: {list(node_registry.keys())}"
                        ]
                    )
                metadata = {k: v for k, v in node_def.items() if k not in ("id", "type", "func")}
                graph.add_node(node_id, node_registry[func_name], **metadata)

            elif node_type == "passthrough":

                def passthrough_func(state: Mapping[str, Any]) -> dict[str, Any]:
                    return {}

                metadata = {k: v for k, v in node_def.items() if k not in ("id", "type")}
                graph.add_node(node_id, passthrough_func, **metadata)

            else:
                raise ValidationError([f"Unsupported node type: {node_type}"])

        entry_point = schema_dict["entry_point"]
        if entry_point not in graph._nodes:
            raise ValidationError(
                [
                    f"Entry point '{entry_point}' not found in nodes. "
                    f"Available nodes: {list(graph._nodes.keys())}"
                ]
            )
        graph.set_entry_point(entry_point)

        for edge_def in schema_dict["edges"]:
            if not isinstance(edge_def, dict):
                raise ValidationError([f"Invalid edge definition: {edge_def}"])

            source = edge_def.get("source")
            if not source:
                raise ValidationError(["Edge definition must have 'source' field"])

            target = edge_def.get("target")
            if target is None:
                raise ValidationError(["Edge definition must have 'target' field"])

            edge_type = edge_def.get("type", "normal")
            if edge_type == "normal":
                graph.add_edge(source, target)

            elif edge_type == "conditional":
                condition_name = edge_def.get("condition")
                if not condition_name:
                    raise ValidationError(
                        [f"Conditional edge from '{source}' must specify 'condition'"]
                    )
                if condition_name not in condition_registry:
                    raise ValidationError(
                        [
                            f"Condition function '{condition_name}' not found in "
                            f"condition_registry. Available: {list(condition_registry.keys())}"
                        ]
                    )
                if not isinstance(target, (dict, list)):
                    raise ValidationError(
                        [
                            "Conditional edge target must map branches to nodes, "
                            f"got: {type(target).__name__}"
                        ]
                    )
                graph.add_conditional_edges(source, condition_registry[condition_name], target)

            else:
                raise ValidationError([f"Unsupported edge type: {edge_type}"])

        return graph


# Convenience factory functions
def create_graph(state_schema: Optional[type[Any]] = None) -> StateGraph:
    """Create a new StateGraph.

    Args:
        state_schema: Optional TypedDict declaring channels

    Returns:
        New StateGraph instance
    """
    return StateGraph(state_schema)


__all__ = [
    # Core types
    "StateGraph",
    "CompiledGraph",
    "Node",
    "Edge",
    "EdgeType",
    "RunStatus",
    "StepEvent",
    # Execution
    "GraphExecutionResult",
    "GraphConfig",
    # Protocols
    "NodeFunctionProtocol",
    "ConditionFunctionProtocol",
    "DebugHookProtocol",
    # Constants
    "END",
    "START",
    # Factory
    "create_graph",
]
