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

"""Error types raised while building and running state graphs.

Build-time errors (UnknownNodeError, DuplicateNodeError, ValidationError)
are raised before anything executes and are never retried. Runtime errors
(RoutingError, NodeExecutionError and friends) abort the current run and
propagate out of ``invoke``/``stream``; the last successful checkpoint stays
the resume point. CheckpointWriteError is reported but does not stop a run
unless the graph is configured to raise on write failures.
"""

from __future__ import annotations

from typing import Any, Hashable, Optional, Sequence

from graphflow.core.errors import ErrorCategory, GraphFlowError


# =============================================================================
# Build-time errors
# =============================================================================


class GraphBuildError(GraphFlowError):
    """Programmer error while declaring a graph."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("category", ErrorCategory.BUILD)
        super().__init__(message, **kwargs)


class UnknownNodeError(GraphBuildError):
    """An edge references a source node that was never registered."""

    def __init__(self, node: str, **kwargs: Any) -> None:
        super().__init__(
            f"Unknown node: '{node}'",
            recovery_hint="Register the node with add_node() before adding its edges.",
            **kwargs,
        )
        self.node = node
        self.details["node"] = node


class DuplicateNodeError(GraphBuildError):
    """A node name is registered twice or collides with a reserved marker."""

    def __init__(self, node: str, *, reserved: bool = False, **kwargs: Any) -> None:
        if reserved:
            message = f"Node name '{node}' is reserved"
        else:
            message = f"Node '{node}' already exists"
        super().__init__(message, **kwargs)
        self.node = node
        self.reserved = reserved
        self.details["node"] = node


class ValidationError(GraphBuildError):
    """The graph structure is invalid; raised by ``StateGraph.compile``.

    Attributes:
        errors: Every structural problem found, in discovery order
    """

    def __init__(self, errors: Sequence[str], **kwargs: Any) -> None:
        self.errors = list(errors)
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(f"Invalid graph: {'; '.join(self.errors)}", **kwargs)
        self.details["errors"] = self.errors


# =============================================================================
# Runtime errors
# =============================================================================


class GraphRuntimeError(GraphFlowError):
    """Failure while a compiled graph is running."""


class RoutingError(GraphRuntimeError):
    """A conditional edge produced a route key with no mapped target.

    This signals a defect in the graph definition, never a transient
    condition, so it is fatal for the run.
    """

    def __init__(
        self,
        source: str,
        route_key: Any,
        available: Optional[Sequence[Hashable]] = None,
        message: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.source = source
        self.route_key = route_key
        self.available = list(available or [])
        if message is None:
            message = (
                f"Conditional edge from '{source}' returned unmapped route key "
                f"{route_key!r} (available: {self.available!r})"
            )
        kwargs.setdefault("category", ErrorCategory.ROUTING)
        super().__init__(message, **kwargs)
        self.details.update({"source": source, "route_key": repr(route_key)})


class NodeExecutionError(GraphRuntimeError):
    """A node raised instead of returning a partial state update."""

    def __init__(
        self,
        message: str,
        node: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("category", ErrorCategory.NODE_EXECUTION)
        super().__init__(message, **kwargs)
        self.node = node
        self.details["node"] = node


class NodeTimeoutError(NodeExecutionError):
    """A node, or the whole run, exceeded its time budget."""

    def __init__(self, node: str, timeout: Optional[float], **kwargs: Any) -> None:
        kwargs.setdefault("category", ErrorCategory.TIMEOUT)
        super().__init__(
            f"Node '{node}' timed out after {timeout}s",
            node=node,
            recovery_hint="Increase node_timeout/timeout or resume from the last checkpoint.",
            **kwargs,
        )
        self.timeout = timeout
        self.details["timeout"] = timeout


class InvalidUpdateError(GraphRuntimeError):
    """A partial update could not be merged into state."""

    def __init__(
        self,
        message: str,
        channel: Optional[str] = None,
        node: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("category", ErrorCategory.STATE_UPDATE)
        super().__init__(message, **kwargs)
        self.channel = channel
        self.node = node
        self.details.update({"channel": channel, "node": node})


class RecursionLimitError(GraphRuntimeError):
    """The run exceeded its step budget or revisited a node too often."""

    def __init__(self, message: str, node: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(
            message,
            recovery_hint="Check the loop's exit condition or raise max_iterations/recursion_limit.",
            **kwargs,
        )
        self.node = node
        self.details["node"] = node


# =============================================================================
# Checkpoint errors
# =============================================================================


class CheckpointError(GraphFlowError):
    """Checkpoint store failure or misuse."""

    def __init__(self, message: str, thread_id: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("category", ErrorCategory.CHECKPOINT)
        super().__init__(message, **kwargs)
        self.thread_id = thread_id
        self.details["thread_id"] = thread_id


class CheckpointWriteError(CheckpointError):
    """Persisting a snapshot failed.

    The in-memory state computed for the current call stays valid; only
    resumability from this exact step is lost.
    """


class CheckpointReadError(CheckpointError):
    """Loading a snapshot failed."""


__all__ = [
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
