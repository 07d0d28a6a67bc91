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

"""Channels: named state slots with a default and a reducer.

A channel decides how a node's partial update combines with the value
already in state. Reducers take ``(current, incoming)`` and return the new
value; they must be pure and must accept the channel default as ``current``.

Channels can be declared explicitly:

    graph = StateGraph()
    graph.add_channel("messages", reducer=concat, default_factory=list)
    graph.add_channel("step", default="start")

or inferred from a TypedDict whose keys are annotated with reducers:

    class AgentState(TypedDict):
        messages: Annotated[list, concat]
        count: Annotated[int, operator.add]
        step: str

    graph = StateGraph(AgentState)
"""

from __future__ import annotations

import copy
import inspect
import logging
import operator
from dataclasses import dataclass
from typing import Any, Annotated, Callable, Optional, get_args, get_origin, get_type_hints

from graphflow.framework.errors import InvalidUpdateError

logger = logging.getLogger(__name__)

Reducer = Callable[[Any, Any], Any]

_MISSING = object()

# Builtins whose zero-argument constructor is a sensible channel default
_DEFAULT_CONSTRUCTIBLE = (list, dict, set, frozenset, tuple, int, float, str)


# =============================================================================
# Built-in reducers
# =============================================================================


def replace(current: Any, incoming: Any) -> Any:
    """Last value wins."""
    return incoming


def concat(current: Any, incoming: Any) -> list[Any]:
    """Concatenate lists; a single non-list value is appended as one item."""
    base = list(current) if current is not None else []
    if incoming is None:
        return base
    if isinstance(incoming, (list, tuple)):
        return base + list(incoming)
    return base + [incoming]


def add(current: Any, incoming: Any) -> Any:
    """``current + incoming``; a missing current value is treated as absent."""
    if current is None:
        return incoming
    return operator.add(current, incoming)


def merge_dicts(current: Any, incoming: Any) -> dict[Any, Any]:
    """Shallow dict merge where incoming keys win."""
    merged = dict(current) if current else {}
    if incoming:
        merged.update(incoming)
    return merged


def union(current: Any, incoming: Any) -> set[Any]:
    """Set union."""
    result = set(current) if current else set()
    if incoming:
        result |= set(incoming)
    return result


REDUCERS: dict[str, Reducer] = {
    "replace": replace,
    "concat": concat,
    "append": concat,
    "add": add,
    "merge": merge_dicts,
    "union": union,
}


def get_reducer(name: str) -> Reducer:
    """Look up a built-in reducer by name.

    Raises:
        KeyError: If no reducer is registered under ``name``
    """
    try:
        return REDUCERS[name]
    except KeyError:
        raise KeyError(f"Unknown reducer '{name}'. Available: {sorted(REDUCERS)}") from None


# =============================================================================
# Channel
# =============================================================================


@dataclass(frozen=True)
class Channel:
    """A named slot of the shared state.

    Attributes:
        name: Channel name, unique within a graph
        reducer: Combines the current value with an incoming update
        default_factory: Produces the initial value (None -> default is None)
    """

    name: str
    reducer: Reducer = replace
    default_factory: Optional[Callable[[], Any]] = None

    @classmethod
    def create(
        cls,
        name: str,
        reducer: Optional[Reducer] = None,
        *,
        default: Any = _MISSING,
        default_factory: Optional[Callable[[], Any]] = None,
    ) -> "Channel":
        """Create a channel from either a default value or a default factory.

        A plain ``default`` is deep-copied on every use so mutable defaults
        are never shared between runs.
        """
        if default is not _MISSING and default_factory is not None:
            raise ValueError(f"Channel '{name}': pass either default or default_factory, not both")
        if reducer is not None and not callable(reducer):
            raise TypeError(f"Channel '{name}': reducer must be callable")
        if default is not _MISSING:
            frozen_default = default
            default_factory = lambda: copy.deepcopy(frozen_default)  # noqa: E731
        return cls(name=name, reducer=reducer or replace, default_factory=default_factory)

    def default_value(self) -> Any:
        """Return a fresh default value."""
        if self.default_factory is None:
            return None
        return self.default_factory()

    def reduce(self, current: Any, incoming: Any) -> Any:
        """Combine ``current`` and ``incoming`` with this channel's reducer.

        Raises:
            InvalidUpdateError: If the reducer rejects the values
        """
        try:
            return self.reducer(current, incoming)
        except InvalidUpdateError:
            raise
        except Exception as e:
            raise InvalidUpdateError(
                f"Reducer for channel '{self.name}' failed: {e}",
                channel=self.name,
                cause=e,
            ) from e

    def describe(self) -> dict[str, Any]:
        """Describe the channel for schema output."""
        return {
            "name": self.name,
            "reducer": getattr(self.reducer, "__name__", repr(self.reducer)),
        }


# =============================================================================
# Schema introspection
# =============================================================================


def _default_factory_for(tp: Any) -> Optional[Callable[[], Any]]:
    origin = get_origin(tp) or tp
    if origin in _DEFAULT_CONSTRUCTIBLE:
        return origin  # type: ignore[no-any-return]
    return None


def _reducer_from_metadata(name: str, metadata: tuple[Any, ...]) -> Optional[Reducer]:
    if not metadata or not callable(metadata[-1]):
        return None
    reducer = metadata[-1]
    try:
        params = list(inspect.signature(reducer).parameters.values())
    except (TypeError, ValueError):
        # Some builtins expose no signature; trust them
        return reducer  # type: ignore[no-any-return]
    positional = sum(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) for p in params
    )
    if positional != 2:
        raise TypeError(
            f"Invalid reducer for channel '{name}'. Expected (current, incoming) -> value, "
            f"got {inspect.signature(reducer)}"
        )
    return reducer  # type: ignore[no-any-return]


def channel_from_annotation(name: str, annotation: Any) -> Channel:
    """Build a channel from one TypedDict annotation.

    ``Annotated[T, reducer]`` yields a reducer channel whose default is ``T()``
    for builtin containers and numbers; anything else is a replace channel
    defaulting to None.
    """
    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        reducer = _reducer_from_metadata(name, tuple(metadata))
        if reducer is not None:
            return Channel(name=name, reducer=reducer, default_factory=_default_factory_for(base))
    return Channel(name=name)


def channels_from_schema(schema: type[Any]) -> dict[str, Channel]:
    """Infer channels from a TypedDict (or any annotated class).

    Args:
        schema: Class whose annotations describe the state keys

    Returns:
        Mapping of channel name to Channel, in annotation order
    """
    hints = get_type_hints(schema, include_extras=True)
    channels = {
        name: channel_from_annotation(name, annotation)
        for name, annotation in hints.items()
        if not name.startswith("__")
    }
    logger.debug(f"Inferred {len(channels)} channels from {schema.__name__}")
    return channels


__all__ = [
    "Channel",
    "Reducer",
    "REDUCERS",
    "add",
    "concat",
    "get_reducer",
    "merge_dicts",
    "replace",
    "union",
    "channel_from_annotation",
    "channels_from_schema",
]
