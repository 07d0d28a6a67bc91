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

"""Checkpoint snapshots and the store contract used by compiled graphs.

A checkpoint store persists one ``StateSnapshot`` per completed step, keyed
by thread id. The engine calls ``get`` at most once per invoke/stream call
and ``put`` once per completed step; the latest successful ``put`` is the
resume point.

Implementations:
    - MemoryCheckpointer: In-process dict (development and tests)
    - SQLiteCheckpointer: File-based SQLite storage (graphflow.framework.checkpointer)
    - JSONFileCheckpointer: One JSON document per thread (graphflow.framework.checkpointer)
"""

from __future__ import annotations

import asyncio
import builtins
import copy
import dataclasses
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Protocol, Union, runtime_checkable

from graphflow.framework.constants import END

if TYPE_CHECKING:
    from graphflow.config.settings import Settings

logger = logging.getLogger(__name__)

# Tag for containers JSON cannot express directly
_TYPE_KEY = "__type__"
_COLLECTIONS: dict[str, type] = {"tuple": tuple, "set": set, "frozenset": frozenset}


def encode_value(value: Any) -> Any:
    """Convert a state value into JSON-compatible data that decodes unchanged.

    Tuples, sets, frozensets and dicts with non-string keys become
    ``{"__type__": ..., "items": [...]}`` records; everything else is left
    for the JSON encoder, which rejects what it cannot represent.
    """
    if isinstance(value, dict):
        if _TYPE_KEY not in value and all(isinstance(key, str) for key in value):
            return {key: encode_value(item) for key, item in value.items()}
        return {
            _TYPE_KEY: "dict",
            "items": [[encode_value(key), encode_value(item)] for key, item in value.items()],
        }
    if isinstance(value, list):
        return [encode_value(item) for item in value]
    if isinstance(value, tuple):
        return {_TYPE_KEY: "tuple", "items": [encode_value(item) for item in value]}
    if isinstance(value, (set, frozenset)):
        items = sorted((encode_value(item) for item in value), key=repr)
        kind = "frozenset" if isinstance(value, frozenset) else "set"
        return {_TYPE_KEY: kind, "items": items}
    return value


def decode_value(data: Any) -> Any:
    """Inverse of :func:`encode_value`.

    Raises:
        ValueError: On an unknown ``__type__`` tag
    """
    if isinstance(data, list):
        return [decode_value(item) for item in data]
    if not isinstance(data, dict):
        return data
    if _TYPE_KEY not in data:
        return {key: decode_value(item) for key, item in data.items()}

    kind = data[_TYPE_KEY]
    if kind == "dict":
        return {decode_value(key): decode_value(item) for key, item in data["items"]}
    if kind in _COLLECTIONS:
        return _COLLECTIONS[kind](decode_value(item) for item in data["items"])
    raise ValueError(f"Unknown encoded state type: {kind!r}")


@dataclass
class StateSnapshot:
    """Persisted (state, pending node) pair for one thread.

    Attributes:
        thread_id: Thread/execution identifier
        node: Node that runs next when the thread resumes (END when finished)
        state: Full state after the last completed step
        step: Number of steps completed on this thread
        checkpoint_id: Unique snapshot identifier
        timestamp: When the snapshot was created
        metadata: Extra information (completed node, interrupt marker, ...)
    """

    thread_id: str
    node: str
    state: dict[str, Any]
    step: int = 0
    checkpoint_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """Whether the thread reached END."""
        return self.node == END

    @property
    def interrupt(self) -> Optional[str]:
        """``"before"``/``"after"`` when the snapshot was taken at an interrupt."""
        return self.metadata.get("interrupt")

    def to_dict(self) -> dict[str, Any]:
        """Serialize snapshot to dictionary."""
        return {
            "checkpoint_id": self.checkpoint_id,
            "thread_id": self.thread_id,
            "node": self.node,
            "state": self.state,
            "step": self.step,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StateSnapshot":
        """Deserialize snapshot from dictionary."""
        return cls(
            checkpoint_id=data["checkpoint_id"],
            thread_id=data["thread_id"],
            node=data["node"],
            state=data["state"],
            step=data.get("step", 0),
            timestamp=data["timestamp"],
            metadata=data.get("metadata", {}),
        )


@runtime_checkable
class CheckpointerProtocol(Protocol):
    """Protocol for checkpoint persistence.

    Stores must serialize concurrent ``get``/``put`` calls for the same
    thread id; last writer wins.
    """

    async def get(self, thread_id: str) -> Optional[StateSnapshot]:
        """Load the latest snapshot for a thread, or None."""
        ...

    async def put(self, thread_id: str, snapshot: StateSnapshot) -> None:
        """Persist a snapshot as the thread's latest."""
        ...

    async def list(self) -> builtins.list[str]:
        """List thread ids that have snapshots."""
        ...

    async def delete(self, thread_id: str) -> bool:
        """Delete every snapshot of a thread; True if anything was removed."""
        ...


class MemoryCheckpointer:
    """In-memory checkpoint storage.

    Suitable for development and testing. Snapshots are deep-copied on the
    way in and out so callers can never alias stored state.
    """

    def __init__(self, max_history: Optional[int] = None) -> None:
        """Initialize the store.

        Args:
            max_history: Snapshots kept per thread (None = unlimited)
        """
        if max_history is not None and max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._snapshots: dict[str, builtins.list[StateSnapshot]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = self._locks[thread_id] = asyncio.Lock()
        return lock

    async def get(self, thread_id: str) -> Optional[StateSnapshot]:
        """Load latest snapshot."""
        async with self._lock_for(thread_id):
            history = self._snapshots.get(thread_id)
            return copy.deepcopy(history[-1]) if history else None

    async def put(self, thread_id: str, snapshot: StateSnapshot) -> None:
        """Save snapshot to memory."""
        stored = copy.deepcopy(dataclasses.replace(snapshot, thread_id=thread_id))
        async with self._lock_for(thread_id):
            history = self._snapshots.setdefault(thread_id, [])
            history.append(stored)
            if self.max_history is not None and len(history) > self.max_history:
                del history[: len(history) - self.max_history]

    async def list(self) -> builtins.list[str]:
        """List threads with snapshots."""
        return [thread_id for thread_id, history in self._snapshots.items() if history]

    async def delete(self, thread_id: str) -> bool:
        """Drop a thread's snapshots."""
        async with self._lock_for(thread_id):
            removed = self._snapshots.pop(thread_id, None)
        self._locks.pop(thread_id, None)
        return bool(removed)

    async def history(self, thread_id: str) -> builtins.list[StateSnapshot]:
        """List all snapshots for a thread, oldest first."""
        async with self._lock_for(thread_id):
            return copy.deepcopy(self._snapshots.get(thread_id, []))


class CheckpointBackend(Enum):
    """Available checkpoint backend types.

    Attributes:
        MEMORY: In-memory checkpointing (ephemeral, lost on restart)
        SQLITE: SQLite database for persistent checkpointing
        JSON: JSON file-based checkpointing
    """

    MEMORY = "memory"
    SQLITE = "sqlite"
    JSON = "json"

    @classmethod
    def is_persistent(cls, backend: "CheckpointBackend") -> bool:
        """Check if a backend provides persistent storage.

        Args:
            backend: The backend type to check

        Returns:
            True if backend persists data across restarts
        """
        return backend not in [cls.MEMORY]


def create_checkpointer(
    backend: Union[CheckpointBackend, str, None] = None,
    path: Union[str, Path, None] = None,
    settings: Optional["Settings"] = None,
) -> CheckpointerProtocol:
    """Create a checkpoint store.

    Args:
        backend: Backend type; defaults to ``Settings.checkpoint_backend``
        path: Database file (sqlite) or directory (json); defaults to the
            settings checkpoint path
        settings: Settings to read defaults from (loaded if None)

    Returns:
        A checkpointer implementing CheckpointerProtocol
    """
    if settings is None and (backend is None or path is None):
        from graphflow.config.settings import load_settings

        settings = load_settings()

    backend = CheckpointBackend(backend if backend is not None else settings.checkpoint_backend)
    if backend == CheckpointBackend.MEMORY:
        logger.debug("Creating memory checkpointer")
        return MemoryCheckpointer()

    if path is None:
        path = settings.model_copy(
            update={"checkpoint_backend": backend.value}
        ).resolve_checkpoint_path()
    logger.debug(f"Creating {backend.value} checkpointer (path: {path})")

    from graphflow.framework.checkpointer import JSONFileCheckpointer, SQLiteCheckpointer

    if backend == CheckpointBackend.SQLITE:
        return SQLiteCheckpointer(str(path))
    return JSONFileCheckpointer(str(path))


__all__ = [
    "StateSnapshot",
    "CheckpointerProtocol",
    "MemoryCheckpointer",
    "CheckpointBackend",
    "create_checkpointer",
    "encode_value",
    "decode_value",
]
