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

"""Logging configuration for graphflow.

Logging Levels (graphflow convention):
- TRACE (5): Full state payloads after each merge
- DEBUG (10): Node start/finish, routing decisions, checkpoint writes
- INFO (20): Resumes, interrupts, completed runs
- WARNING (30): Recoverable issues (failed checkpoint write)
- ERROR (40): Run failures
"""

from __future__ import annotations

import logging
from typing import Optional

# Custom TRACE level for very verbose logging (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Library loggers that are noisy at DEBUG
NOISY_LOGGERS = [
    "asyncio",
]


def resolve_level(log_level: str) -> int:
    """Translate a level name (including TRACE) into a numeric level."""
    level_upper = log_level.upper()
    if level_upper == "TRACE":
        return TRACE
    return getattr(logging, level_upper, logging.INFO)


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``graphflow`` logger hierarchy.

    Installs one console handler (and optionally a file handler) on the
    ``graphflow`` logger. Calling it again replaces the handlers it installed
    earlier instead of stacking duplicates.

    Args:
        log_level: Level name; defaults to ``Settings.log_level``
        log_file: Optional path of a log file; defaults to ``Settings.log_file``

    Returns:
        The configured ``graphflow`` logger
    """
    if log_level is None or log_file is None:
        from graphflow.config.settings import load_settings

        settings = load_settings()
        log_level = log_level or settings.log_level
        log_file = log_file if log_file is not None else settings.log_file

    level = resolve_level(log_level)
    root = logging.getLogger("graphflow")
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_graphflow_handler", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._graphflow_handler = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._graphflow_handler = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)

    # Silence noisy third-party loggers (always WARNING or above)
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root


__all__ = ["TRACE", "configure_logging", "resolve_level"]
