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

"""Tests for CompiledGraph execution: routing, limits, errors and streaming."""

import asyncio
import logging
import operator
import threading
from typing import Annotated, Optional, TypedDict

import pytest

from graphflow.framework.channels import concat
from graphflow.core.errors import GraphFlowError
from graphflow.framework.config import GraphConfig
from graphflow.framework.errors import (
    InvalidUpdateError,
    NodeExecutionError,
    NodeTimeoutError,
    RecursionLimitError,
    RoutingError,
)
from graphflow.framework.graph import (
    END,
    START,
    IterationController,
    RunStatus,
    StateGraph,
    TimeoutManager,
)


class CounterState(TypedDict):
    count: Annotated[int, operator.add]
    trail: Annotated[list, concat]


class EchoState(TypedDict):
    messages: Annotated[list, concat]
    step: Annotated[int, operator.add]
    note: Optional[str]


def increment(state):
    return {"count": 1, "trail": [f"inc{state['count']}"]}


def counter_graph(limit: int = 3) -> StateGraph:
    graph = StateGraph(CounterState)
    graph.add_node("increment", increment)
    graph.add_edge(START, "increment")
    graph.add_conditional_edges(
        "increment",
        lambda state: "loop" if state["count"] < limit else "done",
        {"loop": "increment", "done": END},
    )
    return graph


def single_node_graph(func, schema=EchoState) -> StateGraph:
    graph = StateGraph(schema)
    graph.add_node("work", func)
    graph.add_edge(START, "work")
    graph.add_edge("work", END)
    return graph


class RecordingHook:
    """Debug hook that records every callback."""

    def __init__(self):
        self.calls = []

    async def before_node(self, node_id, state):
        self.calls.append(("before", node_id, dict(state)))

    async def after_node(self, node_id, state, error):
        self.calls.append(("after", node_id, error))


class TestInvoke:
    """Tests for basic invocation."""

    @pytest.mark.asyncio
    async def test_counter_loop(self):
        app = counter_graph().compile()

        state = await app.invoke({})

        assert state["count"] == 3
        assert state["trail"] == ["inc0", "inc1", "inc2"]

    @pytest.mark.asyncio
    async def test_async_node(self):
        async def echo(state):
            await asyncio.sleep(0)
            return {"messages": [f"echo: {state['messages'][-1]}"], "step": 1}

        app = single_node_graph(echo).compile()

        state = await app.invoke({"messages": ["hi"]})

        assert state == {"messages": ["hi", "echo: hi"], "step": 1, "note": None}

    @pytest.mark.asyncio
    async def test_none_update_keeps_state(self):
        app = single_node_graph(lambda state: None).compile()
        state = await app.invoke({"note": "kept"})
        assert state["note"] == "kept"

    @pytest.mark.asyncio
    async def test_graph_without_channels_uses_replace(self):
        graph = StateGraph()
        graph.add_node("a", lambda state: {"x": 1})
        graph.add_node("b", lambda state: {"x": state["x"] + 1, "y": "done"})
        graph.add_edge(START, "a")
        graph.add_edge("a", "b")
        graph.add_edge("b", END)

        state = await graph.compile().invoke({"seed": True})

        assert state == {"seed": True, "x": 2, "y": "done"}

    @pytest.mark.asyncio
    async def test_conditional_entry(self):
        graph = StateGraph(EchoState)
        graph.add_node("short", lambda s: {"note": "short"})
        graph.add_node("long", lambda s: {"note": "long"})
        graph.add_conditional_edges(
            START,
            lambda s: "long" if len(s["messages"]) > 1 else "short",
            ["short", "long"],
        )
        graph.add_edge("short", END)
        graph.add_edge("long", END)
        app = graph.compile()

        assert (await app.invoke({"messages": ["a"]}))["note"] == "short"
        assert (await app.invoke({"messages": ["a", "b"]}))["note"] == "long"

    @pytest.mark.asyncio
    async def test_input_not_mutated(self):
        app = single_node_graph(lambda s: {"messages": ["x"]}).compile()
        values = {"messages": ["hi"]}
        await app.invoke(values)
        assert values == {"messages": ["hi"]}

    @pytest.mark.asyncio
    async def test_node_cannot_mutate_state(self):
        def sneaky(state):
            state["note"] = "changed"

        app = single_node_graph(sneaky).compile()

        with pytest.raises(NodeExecutionError) as exc_info:
            await app.invoke({})
        assert isinstance(exc_info.value.__cause__, TypeError)

    @pytest.mark.asyncio
    async def test_nested_mutation_does_not_leak_with_copy_state(self):
        def sneaky(state):
            state["messages"].append("leak")
            return {"step": 1}

        app = single_node_graph(sneaky).compile()
        state = await app.invoke({"messages": ["hi"]})
        assert state["messages"] == ["hi"]

    @pytest.mark.asyncio
    async def test_uncopyable_value_rejected_with_channel(self, caplog):
        graph = StateGraph()
        graph.add_node("work", lambda s: {"done": True})
        graph.add_edge(START, "work")
        graph.add_edge("work", END)

        with caplog.at_level(logging.ERROR, logger="graphflow"):
            with pytest.raises(InvalidUpdateError, match="Channel 'client'") as exc_info:
                await graph.compile().invoke({"client": threading.Lock()})

        error = exc_info.value
        assert isinstance(error, GraphFlowError)
        assert error.channel == "client"
        assert error.node == "work"
        assert "copy_state=False" in error.recovery_hint
        assert "failed at node 'work'" in caplog.text

    @pytest.mark.asyncio
    async def test_uncopyable_value_shared_without_copy_state(self):
        lock = threading.Lock()
        graph = StateGraph()
        graph.add_node("work", lambda s: {"locked": s["client"].locked()})
        graph.add_edge(START, "work")
        graph.add_edge("work", END)

        state = await graph.compile(copy_state=False).invoke({"client": lock})

        assert state["client"] is lock
        assert state["locked"] is False


class TestExecute:
    """Tests for execute() results."""

    @pytest.mark.asyncio
    async def test_result_fields(self):
        result = await counter_graph().compile().execute({}, thread_id="t-1")

        assert result.status == RunStatus.COMPLETED
        assert not result.interrupted
        assert result.thread_id == "t-1"
        assert result.next_node == END
        assert result.node_history == ["increment"] * 3
        assert result.iterations == 3
        assert result.duration >= 0
        assert result.checkpoint_errors == []

    @pytest.mark.asyncio
    async def test_generated_thread_id(self):
        result = await counter_graph().compile().execute({})
        assert len(result.thread_id) == 32


class TestRouting:
    """Tests for conditional routing."""

    @pytest.mark.asyncio
    async def test_unmapped_key(self):
        graph = StateGraph(EchoState)
        graph.add_node("a", lambda s: None)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", lambda s: "maybe", {"yes": END, "no": "a"})

        with pytest.raises(RoutingError) as exc_info:
            await graph.compile().invoke({})

        error = exc_info.value
        assert error.source == "a"
        assert error.route_key == "maybe"
        assert set(error.available) == {"yes", "no"}

    @pytest.mark.asyncio
    async def test_unmapped_key_keeps_last_snapshot(self, memory_checkpointer):
        route = {"key": "maybe"}
        graph = StateGraph(CounterState)
        graph.add_node("prep", lambda s: {"count": 10})
        graph.add_node("a", lambda s: {"count": 1, "trail": ["a"]})
        graph.add_edge(START, "prep")
        graph.add_edge("prep", "a")
        graph.add_conditional_edges("a", lambda s: route["key"], {"done": END})
        app = graph.compile(checkpointer=memory_checkpointer)

        with pytest.raises(RoutingError):
            await app.invoke({}, thread_id="t1")

        stored = await app.get_state("t1")
        assert stored.node == "a"
        assert stored.step == 1
        assert stored.state == {"count": 10, "trail": []}

        route["key"] = "done"
        state = await app.invoke(None, thread_id="t1")

        assert state == {"count": 11, "trail": ["a"]}

    @pytest.mark.asyncio
    async def test_async_decision_rejected(self):
        async def decide(state):
            return "done"

        graph = StateGraph(EchoState)
        graph.add_node("a", lambda s: None)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", decide, {"done": END})

        with pytest.raises(RoutingError, match="must be synchronous"):
            await graph.compile().invoke({})

    @pytest.mark.asyncio
    async def test_decision_error_wrapped(self):
        def decide(state):
            raise ValueError("bad state")

        graph = StateGraph(EchoState)
        graph.add_node("a", lambda s: None)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", decide, {"done": END})

        with pytest.raises(RoutingError) as exc_info:
            await graph.compile().invoke({})
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_decision_sees_merged_state(self):
        seen = []

        def decide(state):
            seen.append(state["step"])
            return "done"

        graph = StateGraph(EchoState)
        graph.add_node("a", lambda s: {"step": 5})
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", decide, {"done": END})

        await graph.compile().invoke({})
        assert seen == [5]


class TestLimits:
    """Tests for iteration and recursion limits."""

    @pytest.mark.asyncio
    async def test_recursion_limit(self):
        app = counter_graph(limit=100).compile(recursion_limit=5)

        with pytest.raises(RecursionLimitError, match="Recursion limit \\(5\\)") as exc_info:
            await app.invoke({})
        assert exc_info.value.node == "increment"

    @pytest.mark.asyncio
    async def test_max_iterations(self):
        app = counter_graph(limit=100).compile(max_iterations=4, recursion_limit=50)

        with pytest.raises(RecursionLimitError, match="Max iterations \\(4\\)"):
            await app.invoke({})

    @pytest.mark.asyncio
    async def test_per_call_config_override(self):
        app = counter_graph(limit=10).compile(recursion_limit=3)
        config = GraphConfig.from_legacy(recursion_limit=20)

        state = await app.invoke({}, config=config)

        assert state["count"] == 10

    def test_iteration_controller(self):
        controller = IterationController(max_iterations=3, recursion_limit=2)
        assert controller.should_continue("a") == (True, None)
        assert controller.should_continue("a") == (True, None)
        ok, error = controller.should_continue("a")
        assert not ok
        assert "Recursion limit" in error

        controller.reset()
        assert controller.iterations == 0

    def test_timeout_manager_budget(self):
        manager = TimeoutManager(timeout=None, node_timeout=2.0)
        manager.start()
        assert manager.node_budget() == 2.0
        assert not manager.is_expired()

        unlimited = TimeoutManager(timeout=None)
        unlimited.start()
        assert unlimited.node_budget() is None
        assert unlimited.get_remaining() is None


class TestNodeErrors:
    """Tests for node failure handling."""

    @pytest.mark.asyncio
    async def test_exception_wrapped_with_cause(self):
        def boom(state):
            raise ValueError("exploded")

        with pytest.raises(NodeExecutionError, match="Node 'work' failed: exploded") as exc_info:
            await single_node_graph(boom).compile().invoke({})

        assert exc_info.value.node == "work"
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_non_mapping_update(self):
        app = single_node_graph(lambda s: ["not", "a", "dict"]).compile()
        with pytest.raises(InvalidUpdateError, match="must return a mapping"):
            await app.invoke({})

    @pytest.mark.asyncio
    async def test_unknown_channel_update(self):
        app = single_node_graph(lambda s: {"bogus": 1}).compile()
        with pytest.raises(InvalidUpdateError) as exc_info:
            await app.invoke({})
        assert exc_info.value.channel == "bogus"
        assert exc_info.value.node == "work"

    @pytest.mark.asyncio
    async def test_node_timeout(self):
        async def slow(state):
            await asyncio.sleep(5)
            return {"step": 1}

        app = single_node_graph(slow).compile(node_timeout=0.05)

        with pytest.raises(NodeTimeoutError) as exc_info:
            await app.invoke({})
        assert exc_info.value.node == "work"
        assert exc_info.value.timeout == 0.05

    @pytest.mark.asyncio
    async def test_run_timeout(self):
        async def slow(state):
            await asyncio.sleep(0.03)
            return {"count": 1}

        graph = StateGraph(CounterState)
        graph.add_node("slow", slow)
        graph.add_edge(START, "slow")
        graph.add_conditional_edges("slow", lambda s: "again", {"again": "slow", "stop": END})
        app = graph.compile(timeout=0.1, recursion_limit=1000, max_iterations=1000)

        with pytest.raises(NodeTimeoutError):
            await app.invoke({})


class TestCancellation:
    """Tests for caller cancellation."""

    @pytest.mark.asyncio
    async def test_running_node_finishes_and_cancellation_propagates(self):
        started = asyncio.Event()
        finished = []

        async def slow(state):
            started.set()
            await asyncio.sleep(0.05)
            finished.append(True)
            return {"step": 1}

        app = single_node_graph(slow).compile()
        task = asyncio.create_task(app.invoke({}))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert finished == [True]

    @pytest.mark.asyncio
    async def test_no_checkpoint_written_for_cancelled_step(self, memory_checkpointer):
        started = asyncio.Event()

        async def slow(state):
            started.set()
            await asyncio.sleep(0.05)
            return {"step": 1}

        app = single_node_graph(slow).compile(checkpointer=memory_checkpointer)
        task = asyncio.create_task(app.invoke({}, thread_id="cancel-me"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert await memory_checkpointer.get("cancel-me") is None


class TestStream:
    """Tests for streaming execution."""

    @pytest.mark.asyncio
    async def test_values_mode(self):
        app = counter_graph().compile()

        states = [state async for state in app.stream({})]

        assert [s["count"] for s in states] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_updates_mode(self):
        app = counter_graph(limit=2).compile()

        updates = [u async for u in app.stream({}, stream_mode="updates")]

        assert updates == [
            {"increment": {"count": 1, "trail": ["inc0"]}},
            {"increment": {"count": 1, "trail": ["inc1"]}},
        ]

    @pytest.mark.asyncio
    async def test_stream_final_state_matches_invoke(self):
        app = counter_graph().compile()
        states = [s async for s in app.stream({})]
        assert states[-1] == await app.invoke({})

    @pytest.mark.asyncio
    async def test_invalid_mode(self):
        app = counter_graph().compile()
        with pytest.raises(ValueError, match="stream_mode"):
            async for _ in app.stream({}, stream_mode="debug"):
                pass


class TestBatch:
    """Tests for concurrent independent runs."""

    @pytest.mark.asyncio
    async def test_batch_preserves_order(self):
        async def echo(state):
            await asyncio.sleep(0.01 * len(state["messages"][0]))
            return {"messages": [f"echo: {state['messages'][0]}"]}

        app = single_node_graph(echo).compile()

        results = await app.batch(
            [{"messages": ["ccc"]}, {"messages": ["a"]}, {"messages": ["bb"]}],
            max_concurrency=2,
        )

        assert [r["messages"][-1] for r in results] == ["echo: ccc", "echo: a", "echo: bb"]

    @pytest.mark.asyncio
    async def test_batch_respects_max_concurrency(self):
        active = 0
        peak = 0

        async def work(state):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return {"step": 1}

        app = single_node_graph(work).compile()
        await app.batch([{}] * 6, max_concurrency=2)

        assert peak <= 2

    @pytest.mark.asyncio
    async def test_batch_thread_ids_length_checked(self):
        app = counter_graph().compile()
        with pytest.raises(ValueError):
            await app.batch([{}, {}], thread_ids=["only-one"])

    @pytest.mark.asyncio
    async def test_failed_run_cancels_siblings(self, memory_checkpointer):
        finished = []

        async def first(state):
            if state["note"] == "bad":
                raise RuntimeError("boom")
            await asyncio.sleep(0.05)
            finished.append("first")
            return {"step": 1}

        def second(state):
            finished.append("second")
            return {"step": 1}

        graph = StateGraph(EchoState)
        graph.add_node("first", first)
        graph.add_node("second", second)
        graph.add_edge(START, "first")
        graph.add_edge("first", "second")
        graph.add_edge("second", END)
        app = graph.compile(checkpointer=memory_checkpointer)

        with pytest.raises(NodeExecutionError, match="boom"):
            await app.batch([{"note": "bad"}, {"note": "slow"}], thread_ids=["bad", "slow"])
        await asyncio.sleep(0.1)

        assert finished == ["first"]
        assert await memory_checkpointer.list() == []


class TestDebugHook:
    """Tests for the before/after node hook."""

    @pytest.mark.asyncio
    async def test_hook_called_around_each_node(self):
        hook = RecordingHook()
        app = counter_graph(limit=2).compile()
        app.set_debug_hook(hook)

        await app.invoke({})

        assert [(c[0], c[1]) for c in hook.calls] == [
            ("before", "increment"),
            ("after", "increment"),
            ("before", "increment"),
            ("after", "increment"),
        ]
        assert hook.calls[0][2]["count"] == 0

    @pytest.mark.asyncio
    async def test_hook_receives_error(self):
        def boom(state):
            raise RuntimeError("nope")

        hook = RecordingHook()
        app = single_node_graph(boom).compile()

        with pytest.raises(NodeExecutionError):
            await app.invoke({}, debug_hook=hook)

        assert hook.calls[-1][0] == "after"
        assert isinstance(hook.calls[-1][2], NodeExecutionError)
