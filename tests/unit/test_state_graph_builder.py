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

"""Tests for the StateGraph builder and compile-time validation."""

from enum import Enum

import pytest

from graphflow.framework.channels import Channel, concat
from graphflow.framework.errors import (
    DuplicateNodeError,
    GraphBuildError,
    UnknownNodeError,
    ValidationError,
)
from graphflow.framework.graph import END, START, CompiledGraph, StateGraph, create_graph


def noop(state):
    return None


class Verdict(Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"


def linear_graph() -> StateGraph:
    graph = StateGraph()
    graph.add_node("a", noop)
    graph.add_node("b", noop)
    graph.add_edge(START, "a")
    graph.add_edge("a", "b")
    graph.add_edge("b", END)
    return graph


class TestAddNode:
    """Tests for node registration."""

    def test_add_node_chains(self):
        graph = StateGraph()
        assert graph.add_node("a", noop) is graph

    def test_duplicate_node(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        with pytest.raises(DuplicateNodeError) as exc_info:
            graph.add_node("a", noop)
        assert exc_info.value.node == "a"
        assert not exc_info.value.reserved

    @pytest.mark.parametrize("name", [START, END])
    def test_reserved_names(self, name):
        with pytest.raises(DuplicateNodeError, match="reserved"):
            StateGraph().add_node(name, noop)

    def test_empty_name(self):
        with pytest.raises(GraphBuildError):
            StateGraph().add_node("", noop)

    def test_non_callable(self):
        with pytest.raises(GraphBuildError, match="callable"):
            StateGraph().add_node("a", "not a function")  # type: ignore[arg-type]


class TestAddEdges:
    """Tests for edge declarations."""

    def test_unknown_source(self):
        with pytest.raises(UnknownNodeError) as exc_info:
            StateGraph().add_edge("ghost", END)
        assert exc_info.value.node == "ghost"

    def test_unknown_conditional_source(self):
        with pytest.raises(UnknownNodeError):
            StateGraph().add_conditional_edges("ghost", lambda s: "x", {"x": END})

    def test_end_is_not_a_source(self):
        with pytest.raises(UnknownNodeError):
            StateGraph().add_edge(END, "a")

    def test_targets_are_checked_only_at_compile(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", "later")

        graph.add_node("later", noop)
        graph.add_edge("later", END)

        assert isinstance(graph.compile(), CompiledGraph)

    def test_set_entry_and_finish_point(self):
        graph = StateGraph()
        graph.add_node("only", noop)
        graph.set_entry_point("only").set_finish_point("only")
        schema = graph.compile().get_graph_schema()
        assert schema["entry_point"] == {"type": "normal", "target": "only"}

    def test_set_entry_point_unknown(self):
        with pytest.raises(UnknownNodeError):
            StateGraph().set_entry_point("ghost")

    def test_list_routes_map_to_themselves(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_node("b", noop)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", lambda s: "b", ["b", END])
        graph.add_edge("b", END)

        edge = graph.compile().get_graph_schema()["edges"]["a"]

        assert edge["type"] == "conditional"
        assert edge["target"] == {"b": "b", END: END}

    def test_add_conditional_edge_alias(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_conditional_edge("a", lambda s: "done", {"done": END})
        graph.compile()


class TestChannels:
    """Tests for channel declarations."""

    def test_add_channel(self):
        graph = StateGraph().add_channel("messages", concat, default=[])
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", END)
        channels = graph.compile().channels
        assert channels["messages"].reducer is concat

    def test_duplicate_channel(self):
        graph = StateGraph(channels=[Channel(name="x")])
        with pytest.raises(GraphBuildError, match="already exists"):
            graph.add_channel("x")

    def test_channels_as_mapping(self):
        graph = StateGraph(channels={"x": Channel(name="x")})
        graph.add_node("a", noop)
        graph.set_entry_point("a").set_finish_point("a")
        assert list(graph.compile().channels) == ["x"]


class TestCompileValidation:
    """Tests for compile-time structural checks."""

    def test_valid_graph_compiles(self):
        assert isinstance(linear_graph().compile(), CompiledGraph)

    def test_create_graph_factory(self):
        assert isinstance(create_graph(), StateGraph)

    def test_empty_graph(self):
        with pytest.raises(ValidationError) as exc_info:
            StateGraph().compile()
        assert "Graph has no nodes" in exc_info.value.errors

    def test_missing_entry(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge("a", END)
        with pytest.raises(ValidationError, match="No entry point"):
            graph.compile()

    def test_unknown_target(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", "ghost")
        with pytest.raises(ValidationError, match="Edge target 'ghost' not found"):
            graph.compile()

    def test_unknown_conditional_target(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", lambda s: "x", {"x": "ghost", "y": END})
        with pytest.raises(ValidationError, match="Conditional target 'ghost' not found"):
            graph.compile()

    def test_unreachable_node(self):
        graph = linear_graph()
        graph.add_node("orphan", noop)
        graph.add_edge("orphan", END)
        with pytest.raises(ValidationError) as exc_info:
            graph.compile()
        assert "Node 'orphan' is unreachable" in exc_info.value.errors

    def test_node_without_outgoing_edge(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_node("b", noop)
        graph.add_edge(START, "a")
        graph.add_conditional_edges("a", lambda s: "b", {"b": "b", "end": END})
        with pytest.raises(ValidationError) as exc_info:
            graph.compile()
        assert "Node 'b' has no outgoing edges" in exc_info.value.errors

    def test_static_and_conditional_edges_conflict(self):
        graph = linear_graph()
        graph.add_conditional_edges("a", lambda s: "b", {"b": "b"})
        with pytest.raises(ValidationError, match="conflicting outgoing edge"):
            graph.compile()

    def test_two_static_edges_conflict(self):
        graph = linear_graph()
        graph.add_edge("a", END)
        with pytest.raises(ValidationError, match="Node 'a' has 2 conflicting"):
            graph.compile()

    def test_no_path_to_end(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_node("b", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", "b")
        graph.add_edge("b", "a")
        with pytest.raises(ValidationError, match="No path reaches END"):
            graph.compile()

    def test_edge_to_end_makes_graph_compile(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_node("b", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", "b")

        with pytest.raises(ValidationError) as exc_info:
            graph.compile()
        assert "No path reaches END" in exc_info.value.errors

        graph.add_edge("b", END)
        app = graph.compile()

        assert set(app.nodes) == {"a", "b"}
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", START)
        with pytest.raises(ValidationError):
            graph.compile()

    def test_all_errors_reported_together(self):
        graph = StateGraph()
        graph.add_node("a", noop)
        graph.add_node("orphan", noop)
        graph.add_edge(START, "a")
        graph.add_edge("a", "ghost")
        with pytest.raises(ValidationError) as exc_info:
            graph.compile()
        assert len(exc_info.value.errors) >= 3

    def test_enum_routes_must_be_exhaustive(self):
        graph = StateGraph()
        graph.add_node("review", noop)
        graph.add_edge(START, "review")
        graph.add_conditional_edges(
            "review",
            lambda s: Verdict.APPROVE,
            {Verdict.APPROVE: END, Verdict.REJECT: "review"},
        )
        with pytest.raises(ValidationError, match="Verdict.ESCALATE"):
            graph.compile()

    def test_exhaustive_enum_routes_compile(self):
        graph = StateGraph()
        graph.add_node("review", noop)
        graph.add_edge(START, "review")
        graph.add_conditional_edges(
            "review",
            lambda s: Verdict.APPROVE,
            {Verdict.APPROVE: END, Verdict.REJECT: "review", Verdict.ESCALATE: END},
        )
        graph.compile()

    def test_interrupt_node_must_exist(self):
        with pytest.raises(ValidationError, match="Interrupt node 'ghost' not found"):
            linear_graph().compile(interrupt_before=["ghost"])

    def test_graph_schema(self):
        schema = linear_graph().compile().get_graph_schema()
        assert schema["nodes"] == ["a", "b"]
        assert schema["edges"]["a"] == {"type": "normal", "target": "b"}
        assert schema["edges"]["b"] == {"type": "normal", "target": END}
