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

"""Framework API - build, validate and run stateful graph workflows.

Quick Start:
    from graphflow.framework import StateGraph, START, END

    graph = StateGraph()
    graph.add_channel("messages", concat, default=[])
    graph.add_node("echo", echo)
    graph.add_edge(START, "echo")
    graph.add_edge("echo", END)

    app = graph.compile()
    state = await app.invoke({"messages": ["hi"]})

Persistence:
    app = graph.compile(checkpointer=MemoryCheckpointer(), interrupt_before=["review"])
    await app.invoke(values, thread_id="t1")   # pauses before "review"
    await app.invoke(None, thread_id="t1")     # resumes at "review"
"""

from graphflow.framework.channels import (
    REDUCERS,
    Channel,
    Reducer,
    add,
    concat,
    get_reducer,
    merge_dicts,
    replace,
    union,
)
from graphflow.framework.checkpoint import (
    CheckpointBackend,
    CheckpointerProtocol,
    MemoryCheckpointer,
    StateSnapshot,
    create_checkpointer,
)
from graphflow.framework.checkpointer import JSONFileCheckpointer, SQLiteCheckpointer
from graphflow.framework.config import GraphConfig
from graphflow.framework.constants import END, START
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
from graphflow.framework.graph import (
    CompiledGraph,
    DebugHookProtocol,
    GraphExecutionResult,
    RunStatus,
    StateGraph,
    create_graph,
)
from graphflow.framework.state import StateView

__all__ = [
    # Graph
    "StateGraph",
    "CompiledGraph",
    "GraphExecutionResult",
    "GraphConfig",
    "RunStatus",
    "DebugHookProtocol",
    "create_graph",
    "START",
    "END",
    # State
    "Channel",
    "Reducer",
    "REDUCERS",
    "StateView",
    "add",
    "concat",
    "get_reducer",
    "merge_dicts",
    "replace",
    "union",
    # Checkpointing
    "StateSnapshot",
    "CheckpointerProtocol",
    "CheckpointBackend",
    "MemoryCheckpointer",
    "SQLiteCheckpointer",
    "JSONFileCheckpointer",
    "create_checkpointer",
    # Errors
    "GraphBuildError",
    "UnknownNodeError",
    "DuplicateNodeError",
    "ValidationError",
    "GraphRuntimeError",
    "RoutingError",
    "NodeExecutionError",
    "NodeTimeoutError",
    "InvalidUpdateError",
    "RecursionLimitError",
    "CheckpointError",
    "CheckpointWriteError",
    "CheckpointReadError",
]
