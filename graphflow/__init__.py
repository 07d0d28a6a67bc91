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

"""
graphflow - a stateful graph workflow engine.

Nodes read a shared state and return partial updates; channel reducers merge
the updates, conditional edges route on the merged state, and checkpointers
let interrupted runs resume exactly where they stopped.

Simple API:
    from graphflow import StateGraph, START, END

    graph = StateGraph(MyState)
    graph.add_node("work", work)
    graph.add_edge(START, "work")
    graph.add_edge("work", END)

    state = await graph.compile().invoke({"task": "demo"})
"""

__version__ = "0.1.0"
__author__ = "Vijaykumar Singh"
__email__ = "singhvjd@gmail.com"
__license__ = "Apache-2.0"

from graphflow.config.settings import Settings, load_settings
from graphflow.core.errors import ConfigurationError, ErrorCategory, GraphFlowError
from graphflow.core.log_setup import configure_logging
from graphflow.framework import (
    END,
    START,
    Channel,
    CompiledGraph,
    GraphConfig,
    GraphExecutionResult,
    MemoryCheckpointer,
    StateGraph,
    StateSnapshot,
    create_checkpointer,
)

__all__ = [
    "__version__",
    "StateGraph",
    "CompiledGraph",
    "GraphExecutionResult",
    "GraphConfig",
    "Channel",
    "StateSnapshot",
    "MemoryCheckpointer",
    "create_checkpointer",
    "START",
    "END",
    "Settings",
    "load_settings",
    "configure_logging",
    "GraphFlowError",
    "ErrorCategory",
    "ConfigurationError",
]
