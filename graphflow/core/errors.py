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

"""Centralized error types for graphflow.

This module provides:
- Error categories used to classify failures
- The GraphFlowError root exception with structured details
- Correlation IDs so a failure can be followed through the logs
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# Error Categories
# =============================================================================


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""

    # Graph definition errors
    BUILD = "build"
    VALIDATION = "validation"

    # Execution errors
    ROUTING = "routing"
    NODE_EXECUTION = "node_execution"
    TIMEOUT = "timeout"
    STATE_UPDATE = "state_update"

    # Persistence errors
    CHECKPOINT = "checkpoint"

    # Configuration errors
    CONFIG = "config"

    # System errors
    INTERNAL = "internal"


# =============================================================================
# Base Exception
# =============================================================================


class GraphFlowError(Exception):
    """Base exception for all graphflow errors.

    Provides structured error information including:
    - Error category
    - Correlation ID for tracking
    - Recovery hint
    - Original exception chain
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
        correlation_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recovery_hint = recovery_hint
        self.correlation_id = correlation_id or str(uuid.uuid4())[:8]
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.message,
            "type": type(self).__name__,
            "category": self.category.value,
            "correlation_id": self.correlation_id,
            "recovery_hint": self.recovery_hint,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        result = f"[{self.correlation_id}] {self.message}"
        if self.recovery_hint:
            result += f"\nRecovery hint: {self.recovery_hint}"
        return result


class ConfigurationError(GraphFlowError):
    """Invalid or inconsistent configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("category", ErrorCategory.CONFIG)
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.details["config_key"] = config_key


__all__ = [
    "ErrorCategory",
    "GraphFlowError",
    "ConfigurationError",
]
