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

"""Execution configuration for compiled graphs.

GraphConfig is a facade composing small, focused configs so each engine
helper depends only on the settings it uses:

    - ExecutionConfig: iteration/recursion limits and timeouts
    - InterruptConfig: human-in-the-loop interrupt points
    - CheckpointConfig: persistence backend and failure policy
    - PerformanceConfig: state copying strategy
    - ObservabilityConfig: run identification and debug hooks

Example:
    config = GraphConfig.from_legacy(max_iterations=10, interrupt_before=["review"])
    app = graph.compile(config=config)

    # Or flat keyword arguments straight to compile()
    app = graph.compile(checkpointer=MemoryCheckpointer(), node_timeout=30.0)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from graphflow.core.errors import ConfigurationError

if TYPE_CHECKING:
    from graphflow.config.settings import Settings
    from graphflow.framework.checkpoint import CheckpointerProtocol


@dataclass
class ExecutionConfig:
    """Limits applied to one invoke/stream call.

    Attributes:
        max_iterations: Maximum node executions per call
        recursion_limit: Maximum executions of the same node per call
        timeout: Overall wall-clock budget in seconds (None = no limit)
        node_timeout: Budget for a single node execution (None = no limit)
    """

    max_iterations: int = 100
    recursion_limit: int = 25
    timeout: Optional[float] = None
    node_timeout: Optional[float] = None


@dataclass
class InterruptConfig:
    """Nodes to pause before or after."""

    interrupt_before: list[str] = field(default_factory=list)
    interrupt_after: list[str] = field(default_factory=list)


@dataclass
class CheckpointConfig:
    """Checkpoint persistence settings.

    Attributes:
        checkpointer: Store used for snapshots (None = no checkpointing)
        raise_on_write_error: Abort the run when a snapshot write fails
    """

    checkpointer: Optional["CheckpointerProtocol"] = None
    raise_on_write_error: bool = False


@dataclass
class PerformanceConfig:
    """State handling trade-offs.

    Attributes:
        copy_state: Give nodes a deep copy of state (True) or a read-only
            live view (False)
    """

    copy_state: bool = True


@dataclass
class ObservabilityConfig:
    """Run identification for logs."""

    graph_id: Optional[str] = None


_SECTIONS = ("execution", "interrupt", "checkpoint", "performance", "observability")

# Flat keyword -> (section, attribute)
_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "max_iterations": ("execution", "max_iterations"),
    "recursion_limit": ("execution", "recursion_limit"),
    "timeout": ("execution", "timeout"),
    "node_timeout": ("execution", "node_timeout"),
    "interrupt_before": ("interrupt", "interrupt_before"),
    "interrupt_after": ("interrupt", "interrupt_after"),
    "checkpointer": ("checkpoint", "checkpointer"),
    "raise_on_checkpoint_error": ("checkpoint", "raise_on_write_error"),
    "copy_state": ("performance", "copy_state"),
    "graph_id": ("observability", "graph_id"),
}


@dataclass
class GraphConfig:
    """Facade over the focused execution configs."""

    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    interrupt: InterruptConfig = field(default_factory=InterruptConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self) -> None:
        if self.execution.max_iterations < 1:
            raise ConfigurationError(
                "max_iterations must be at least 1", config_key="max_iterations"
            )
        if self.execution.recursion_limit < 1:
            raise ConfigurationError(
                "recursion_limit must be at least 1", config_key="recursion_limit"
            )
        for key in ("timeout", "node_timeout"):
            value = getattr(self.execution, key)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{key} must be positive, got {value}", config_key=key)

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "GraphConfig":
        """Create a config seeded from application settings.

        Args:
            settings: Settings to read (loaded from the environment if None)
        """
        if settings is None:
            from graphflow.config.settings import load_settings

            settings = load_settings()

        return cls(
            execution=ExecutionConfig(
                max_iterations=settings.max_iterations,
                recursion_limit=settings.recursion_limit,
                timeout=settings.execution_timeout,
                node_timeout=settings.node_timeout,
            ),
            checkpoint=CheckpointConfig(
                raise_on_write_error=settings.checkpoint_raise_on_write_error,
            ),
            performance=PerformanceConfig(copy_state=settings.copy_state),
        )

    @classmethod
    def from_legacy(
        cls,
        base: Optional["GraphConfig"] = None,
        settings: Optional["Settings"] = None,
        **kwargs: Any,
    ) -> "GraphConfig":
        """Build a config from flat keyword arguments.

        Args:
            base: Config to start from (defaults to ``from_settings()``)
            settings: Settings used when no base is given
            **kwargs: Flat options such as ``max_iterations`` or ``checkpointer``

        Raises:
            ConfigurationError: On unknown option names
        """
        unknown = sorted(set(kwargs) - set(_LEGACY_KEYS))
        if unknown:
            raise ConfigurationError(
                f"Unknown graph config options: {unknown}. Valid: {sorted(_LEGACY_KEYS)}",
                config_key=unknown[0],
            )

        config = base.copy() if base is not None else cls.from_settings(settings)
        for key, value in kwargs.items():
            section, attr = _LEGACY_KEYS[key]
            if key in ("interrupt_before", "interrupt_after"):
                value = list(value or [])
            setattr(getattr(config, section), attr, value)
        config.__post_init__()
        return config

    def with_overrides(self, **kwargs: Any) -> "GraphConfig":
        """Return a copy with flat options applied; None values are ignored."""
        return GraphConfig.from_legacy(
            base=self, **{k: v for k, v in kwargs.items() if v is not None}
        )

    def copy(self) -> "GraphConfig":
        """Copy the focused configs; the checkpointer instance is shared."""
        return GraphConfig(
            **{name: dataclasses.replace(getattr(self, name)) for name in _SECTIONS}
        )


__all__ = [
    "GraphConfig",
    "ExecutionConfig",
    "InterruptConfig",
    "CheckpointConfig",
    "PerformanceConfig",
    "ObservabilityConfig",
]
