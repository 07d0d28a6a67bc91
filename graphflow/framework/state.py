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

"""State construction, merging and the read-only view handed to nodes.

State is a plain ``dict`` mapping channel names to values. It is never
mutated in place: every merge produces a new dict, and nodes only ever see
a ``StateView`` so the engine alone owns the authoritative state.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Optional

from graphflow.framework.channels import Channel
from graphflow.framework.errors import InvalidUpdateError

logger = logging.getLogger(__name__)


class StateView(Mapping[str, Any]):
    """Read-only mapping over a state snapshot.

    With ``copy_state=True`` the view owns a deep copy of the state, so even
    nested values (lists, dicts) cannot leak mutations back into the run.
    With ``copy_state=False`` it wraps the live dict: reads are O(1) with no
    copy, and only top-level mutation is blocked. Values that cannot be
    deep-copied (locks, clients, connections) need ``copy_state=False``;
    copying them raises InvalidUpdateError naming the channel.

    Example:
        view = StateView({"count": 1})
        view["count"]          # 1
        view["count"] = 2      # TypeError
    """

    __slots__ = ("_data",)

    def __init__(self, state: Mapping[str, Any], *, copy_state: bool = True):
        """Initialize the view.

        Args:
            state: State to expose
            copy_state: Deep-copy the state before exposing it
        """
        self._data: dict[str, Any] = copy_values(state) if copy_state else state  # type: ignore[assignment]

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _readonly(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError(
            "State is read-only inside nodes; return a partial update dict instead"
        )

    __setitem__ = _readonly
    __delitem__ = _readonly
    update = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    clear = _readonly

    def to_dict(self) -> dict[str, Any]:
        """Return a deep, mutable copy of the viewed state."""
        return copy_values(self._data)

    def __repr__(self) -> str:
        return f"StateView({dict(self._data)!r})"


def copy_values(state: Mapping[str, Any], node: Optional[str] = None) -> dict[str, Any]:
    """Deep-copy a state channel by channel.

    Raises:
        InvalidUpdateError: If a channel value cannot be deep-copied
    """
    copied: dict[str, Any] = {}
    for key, value in state.items():
        try:
            copied[key] = copy.deepcopy(value)
        except Exception as e:
            raise InvalidUpdateError(
                f"Channel '{key}' holds a {type(value).__name__} that cannot be copied: {e}",
                channel=key,
                node=node,
                recovery_hint="Compile with copy_state=False to share such values by reference.",
                cause=e,
            ) from e
    return copied


def initial_state(
    channels: Mapping[str, Channel],
    values: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Build a run's starting state.

    Every channel starts at its default; caller values are then folded in
    through the channel reducers, exactly as a node update would be.

    Args:
        channels: Declared channels
        values: Caller-supplied initial values (may be empty)

    Returns:
        New state dictionary
    """
    state = {name: channel.default_value() for name, channel in channels.items()}
    if values:
        state = apply_update(channels, state, values)
    return state


def apply_update(
    channels: Mapping[str, Channel],
    state: Mapping[str, Any],
    update: Optional[Mapping[str, Any]],
    node: Optional[str] = None,
) -> dict[str, Any]:
    """Merge a partial update into state, returning a new state.

    For each key in ``update`` the new value is
    ``reduce(state.get(key, default), update[key])``; keys absent from the
    update keep their current value.

    Args:
        channels: Declared channels
        state: Current state (not modified)
        update: Partial update returned by a node; None means no change
        node: Node that produced the update, for error messages

    Returns:
        New state dictionary

    Raises:
        InvalidUpdateError: If the update is not a mapping, names an
            undeclared channel, or a reducer fails
    """
    new_state = dict(state)
    if update is None:
        return new_state

    if not isinstance(update, Mapping):
        source = f"Node '{node}'" if node else "Update"
        raise InvalidUpdateError(
            f"{source} must return a mapping of channel updates, got {type(update).__name__}",
            node=node,
        )

    for key, incoming in update.items():
        channel = channels.get(key)
        if channel is None:
            raise InvalidUpdateError(
                f"Unknown channel '{key}'"
                + (f" in update from node '{node}'" if node else "")
                + f". Declared channels: {sorted(channels)}",
                channel=key,
                node=node,
            )
        current = new_state[key] if key in new_state else channel.default_value()
        try:
            new_state[key] = channel.reduce(current, incoming)
        except InvalidUpdateError as e:
            e.node = node
            e.details["node"] = node
            raise

    return new_state


__all__ = ["StateView", "apply_update", "copy_values", "initial_state"]
