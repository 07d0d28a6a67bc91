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

"""Persistent checkpointer implementations for StateGraph.

Provides storage backends for checkpointing graph execution state,
enabling resumption of interrupted runs and audit trails.

Implementations:
    - SQLiteCheckpointer: File-based SQLite storage
    - JSONFileCheckpointer: One JSON document per thread

Example:
    from graphflow.framework.checkpointer import SQLiteCheckpointer
    from graphflow.framework.graph import StateGraph

    checkpointer = SQLiteCheckpointer("~/.graphflow/checkpoints.db")
    graph = StateGraph(MyState)
    # ... add nodes and edges ...
    app = graph.compile(checkpointer=checkpointer)

    # Execute with automatic checkpointing
    state = await app.invoke(initial_state, thread_id="my-thread")

    # Resume from checkpoint
    state = await app.invoke({}, thread_id="my-thread")
"""

from __future__ import annotations

import asyncio
import builtins
import json
import logging
import os
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote, unquote

from graphflow.framework.checkpoint import StateSnapshot, decode_value, encode_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteCheckpointer:
    """SQLite-based checkpointer for graph state persistence.

    Stores snapshots in a SQLite database file for durability and
    queryability. Blocking database work runs in the default executor and
    is serialized by a lock, so concurrent puts for one thread are applied
    in arrival order (last writer wins).

    Attributes:
        db_path: Path to SQLite database file
        table_name: Name of the snapshots table

    Example:
        checkpointer = SQLiteCheckpointer("~/.graphflow/checkpoints.db")
        await checkpointer.put("thread-123", snapshot)
        latest = await checkpointer.get("thread-123")
    """

    def __init__(
        self,
        db_path: str = "~/.graphflow/checkpoints.db",
        table_name: str = "snapshots",
    ):
        """Initialize SQLite checkpointer.

        Args:
            db_path: Path to database file (created if missing); ``:memory:``
                keeps the database in process memory
            table_name: Name for snapshots table
        """
        if not table_name.isidentifier():
            raise ValueError(f"Invalid table name: {table_name!r}")
        self.db_path = db_path if db_path == ":memory:" else Path(os.path.expanduser(db_path))
        self.table_name = table_name
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection. Caller holds the lock."""
        if self._conn is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_schema(self._conn)
        return self._conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        """Initialize database schema."""
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                checkpoint_id TEXT NOT NULL UNIQUE,
                thread_id TEXT NOT NULL,
                node TEXT NOT NULL,
                state TEXT NOT NULL,
                step INTEGER NOT NULL DEFAULT 0,
                timestamp REAL NOT NULL,
                metadata TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{self.table_name}_thread_id
            ON {self.table_name}(thread_id, id)
        """)
        conn.commit()
        logger.debug(f"Initialized checkpoint schema: {self.db_path}")

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._locked, func, *args)

    def _locked(self, func: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return func(self._get_connection(), *args)

    @staticmethod
    def _row_to_snapshot(row: sqlite3.Row) -> StateSnapshot:
        return StateSnapshot(
            checkpoint_id=row["checkpoint_id"],
            thread_id=row["thread_id"],
            node=row["node"],
            state=decode_value(json.loads(row["state"])),
            step=row["step"],
            timestamp=row["timestamp"],
            metadata=decode_value(json.loads(row["metadata"])) if row["metadata"] else {},
        )

    async def put(self, thread_id: str, snapshot: StateSnapshot) -> None:
        """Save a snapshot to SQLite.

        Args:
            thread_id: Thread identifier
            snapshot: Snapshot to save

        Raises:
            TypeError: If the state is not JSON serializable
        """
        await self._run(self._put_sync, thread_id, snapshot)

    def _put_sync(self, conn: sqlite3.Connection, thread_id: str, snapshot: StateSnapshot) -> None:
        """Synchronous put implementation."""
        conn.execute(
            f"""
            INSERT OR REPLACE INTO {self.table_name}
            (checkpoint_id, thread_id, node, state, step, timestamp, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
            (
                snapshot.checkpoint_id,
                thread_id,
                snapshot.node,
                json.dumps(encode_value(snapshot.state)),
                snapshot.step,
                snapshot.timestamp,
                json.dumps(encode_value(snapshot.metadata)),
            ),
        )
        conn.commit()
        logger.debug(
            f"Saved snapshot: {snapshot.checkpoint_id} "
            f"(thread: {thread_id}, node: {snapshot.node})"
        )

    async def get(self, thread_id: str) -> Optional[StateSnapshot]:
        """Load the latest snapshot for a thread.

        Args:
            thread_id: Thread identifier

        Returns:
            Latest snapshot or None if not found
        """
        return await self._run(self._get_sync, thread_id)

    def _get_sync(self, conn: sqlite3.Connection, thread_id: str) -> Optional[StateSnapshot]:
        """Synchronous get implementation."""
        row = conn.execute(
            f"""
            SELECT * FROM {self.table_name}
            WHERE thread_id = ?
            ORDER BY id DESC
            LIMIT 1
        """,
            (thread_id,),
        ).fetchone()
        return self._row_to_snapshot(row) if row is not None else None

    async def list(self) -> builtins.list[str]:
        """List thread ids with snapshots, oldest thread first."""
        return await self._run(self._list_sync)

    def _list_sync(self, conn: sqlite3.Connection) -> builtins.list[str]:
        rows = conn.execute(f"""
            SELECT thread_id FROM {self.table_name}
            GROUP BY thread_id
            ORDER BY MIN(id)
        """).fetchall()
        return [row["thread_id"] for row in rows]

    async def delete(self, thread_id: str) -> bool:
        """Delete all snapshots for a thread.

        Returns:
            True if anything was deleted
        """
        return await self._run(self._delete_sync, thread_id)

    def _delete_sync(self, conn: sqlite3.Connection, thread_id: str) -> bool:
        cursor = conn.execute(
            f"DELETE FROM {self.table_name} WHERE thread_id = ?",
            (thread_id,),
        )
        conn.commit()
        return cursor.rowcount > 0

    async def history(self, thread_id: str) -> builtins.list[StateSnapshot]:
        """List all snapshots for a thread, oldest first."""
        return await self._run(self._history_sync, thread_id)

    def _history_sync(
        self, conn: sqlite3.Connection, thread_id: str
    ) -> builtins.list[StateSnapshot]:
        rows = conn.execute(
            f"SELECT * FROM {self.table_name} WHERE thread_id = ? ORDER BY id ASC",
            (thread_id,),
        ).fetchall()
        return [self._row_to_snapshot(row) for row in rows]

    async def cleanup(self, max_per_thread: int = 10) -> int:
        """Keep only the newest ``max_per_thread`` snapshots of every thread.

        Returns:
            Number of snapshots deleted
        """
        if max_per_thread < 1:
            raise ValueError("max_per_thread must be at least 1")
        return await self._run(self._cleanup_sync, max_per_thread)

    def _cleanup_sync(self, conn: sqlite3.Connection, max_per_thread: int) -> int:
        deleted = 0
        threads = conn.execute(f"SELECT DISTINCT thread_id FROM {self.table_name}").fetchall()

        for (thread_id,) in threads:
            cursor = conn.execute(
                f"""
                DELETE FROM {self.table_name}
                WHERE thread_id = ? AND id NOT IN (
                    SELECT id FROM {self.table_name}
                    WHERE thread_id = ?
                    ORDER BY id DESC
                    LIMIT ?
                )
            """,
                (thread_id, thread_id, max_per_thread),
            )
            deleted += cursor.rowcount

        conn.commit()
        logger.info(f"Cleaned up {deleted} snapshots")
        return deleted

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None


class JSONFileCheckpointer:
    """JSON file-based checkpointer for simple storage.

    Keeps one JSON document per thread holding its snapshot history.
    Documents are replaced atomically, so a crash mid-write leaves the
    previous document intact. Suitable for development and debugging.

    Attributes:
        base_dir: Directory to store thread documents
        max_history: Snapshots kept per thread
    """

    def __init__(self, base_dir: str = "~/.graphflow/checkpoints", max_history: int = 50):
        """Initialize JSON file checkpointer.

        Args:
            base_dir: Directory for thread documents
            max_history: Snapshots kept per thread
        """
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.base_dir = Path(os.path.expanduser(base_dir))
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.max_history = max_history
        self._lock = threading.Lock()

    def _thread_file(self, thread_id: str) -> Path:
        return self.base_dir / f"{quote(thread_id, safe='')}.json"

    def _read(self, thread_id: str) -> builtins.list[dict[str, Any]]:
        filepath = self._thread_file(thread_id)
        if not filepath.exists():
            return []
        with open(filepath, encoding="utf-8") as f:
            return json.load(f)["snapshots"]

    def _write(self, thread_id: str, snapshots: builtins.list[dict[str, Any]]) -> None:
        filepath = self._thread_file(thread_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"thread_id": thread_id, "snapshots": snapshots}, f, indent=2)
            os.replace(tmp_name, filepath)
        except BaseException:
            os.unlink(tmp_name)
            raise
        logger.debug(f"Saved snapshot to: {filepath}")

    @staticmethod
    def _to_snapshot(data: dict[str, Any]) -> StateSnapshot:
        snapshot = StateSnapshot.from_dict(data)
        snapshot.state = decode_value(snapshot.state)
        snapshot.metadata = decode_value(snapshot.metadata)
        return snapshot

    async def put(self, thread_id: str, snapshot: StateSnapshot) -> None:
        """Append snapshot to the thread's document."""
        data = snapshot.to_dict()
        data["thread_id"] = thread_id
        data["state"] = encode_value(data["state"])
        data["metadata"] = encode_value(data["metadata"])
        with self._lock:
            snapshots = self._read(thread_id)
            snapshots.append(data)
            self._write(thread_id, snapshots[-self.max_history :])

    async def get(self, thread_id: str) -> Optional[StateSnapshot]:
        """Load latest snapshot for thread."""
        with self._lock:
            snapshots = self._read(thread_id)
        return self._to_snapshot(snapshots[-1]) if snapshots else None

    async def list(self) -> builtins.list[str]:
        """List threads with documents."""
        files = sorted(self.base_dir.glob("*.json"), key=lambda p: p.stat().st_mtime)
        return [unquote(p.stem) for p in files]

    async def delete(self, thread_id: str) -> bool:
        """Remove the thread's document."""
        with self._lock:
            filepath = self._thread_file(thread_id)
            if not filepath.exists():
                return False
            filepath.unlink()
            return True

    async def history(self, thread_id: str) -> builtins.list[StateSnapshot]:
        """List all snapshots for thread, oldest first."""
        with self._lock:
            snapshots = self._read(thread_id)
        return [self._to_snapshot(data) for data in snapshots]


__all__ = [
    "SQLiteCheckpointer",
    "JSONFileCheckpointer",
]
