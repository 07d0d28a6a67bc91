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

"""Checkpoint inspector - browse persisted graph threads.

Reads a SQLite or JSON checkpoint store and prints threads and snapshots as
JSON, so interrupted runs can be examined (or cleared) from the shell.

Usage:
    python -m graphflow.devtools.checkpoint_inspector list
    python -m graphflow.devtools.checkpoint_inspector show THREAD_ID
    python -m graphflow.devtools.checkpoint_inspector history THREAD_ID
    python -m graphflow.devtools.checkpoint_inspector --backend json delete THREAD_ID

Exit codes:
    0 - success
    1 - thread not found
    2 - usage or configuration error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sqlite3
import sys
from typing import Any, Optional, Sequence

from graphflow.core.errors import GraphFlowError
from graphflow.core.log_setup import configure_logging
from graphflow.framework.checkpoint import CheckpointerProtocol, StateSnapshot, create_checkpointer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


def _format_snapshot(snapshot: StateSnapshot, include_state: bool = True) -> dict[str, Any]:
    data = snapshot.to_dict()
    data["complete"] = snapshot.is_complete
    if not include_state:
        data.pop("state", None)
    return data


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


async def _list_threads(store: CheckpointerProtocol) -> int:
    threads = await store.list()
    _emit(threads)
    return EXIT_OK


async def _show_thread(store: CheckpointerProtocol, thread_id: str) -> int:
    snapshot = await store.get(thread_id)
    if snapshot is None:
        print(f"Thread not found: {thread_id}", file=sys.stderr)
        return EXIT_NOT_FOUND
    _emit(_format_snapshot(snapshot))
    return EXIT_OK


async def _show_history(store: CheckpointerProtocol, thread_id: str, with_state: bool) -> int:
    history = getattr(store, "history", None)
    if history is None:
        print("This checkpoint store does not keep history", file=sys.stderr)
        return EXIT_ERROR
    snapshots = await history(thread_id)
    if not snapshots:
        print(f"Thread not found: {thread_id}", file=sys.stderr)
        return EXIT_NOT_FOUND
    _emit([_format_snapshot(s, include_state=with_state) for s in snapshots])
    return EXIT_OK


async def _delete_thread(store: CheckpointerProtocol, thread_id: str) -> int:
    if not await store.delete(thread_id):
        print(f"Thread not found: {thread_id}", file=sys.stderr)
        return EXIT_NOT_FOUND
    print(f"Deleted thread: {thread_id}")
    return EXIT_OK


async def _dispatch(args: argparse.Namespace) -> int:
    store = create_checkpointer(backend=args.backend, path=args.path)
    try:
        if args.command == "list":
            return await _list_threads(store)
        if args.command == "show":
            return await _show_thread(store, args.thread_id)
        if args.command == "history":
            return await _show_history(store, args.thread_id, args.with_state)
        return await _delete_thread(store, args.thread_id)
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            close()


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="graphflow-checkpoints",
        description="Inspect persisted graphflow checkpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List threads in the default SQLite store
  python -m graphflow.devtools.checkpoint_inspector list

  # Show the latest snapshot of a thread
  python -m graphflow.devtools.checkpoint_inspector show review-42

  # Show every snapshot of a thread without state payloads
  python -m graphflow.devtools.checkpoint_inspector history review-42

  # Use a JSON store in a custom directory
  python -m graphflow.devtools.checkpoint_inspector --backend json --path ./ckpt list
        """,
    )

    parser.add_argument(
        "--backend",
        choices=["sqlite", "json"],
        default="sqlite",
        help="Checkpoint store type (default: sqlite)",
    )

    parser.add_argument(
        "--path",
        type=str,
        metavar="PATH",
        default=None,
        help="Database file or directory (default: from settings)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="List thread IDs")

    show = subparsers.add_parser("show", help="Show the latest snapshot of a thread")
    show.add_argument("thread_id", metavar="THREAD")

    history = subparsers.add_parser("history", help="Show all snapshots of a thread")
    history.add_argument("thread_id", metavar="THREAD")
    history.add_argument(
        "--with-state",
        action="store_true",
        help="Include state payloads",
    )

    delete = subparsers.add_parser("delete", help="Delete a thread")
    delete.add_argument("thread_id", metavar="THREAD")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(log_level=args.log_level, log_file="")

    try:
        return asyncio.run(_dispatch(args))
    except GraphFlowError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (OSError, ValueError, sqlite3.Error) as e:
        logger.debug("Checkpoint store failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
