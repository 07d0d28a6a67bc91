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

"""Configuration management for graphflow.

Settings are read from ``GRAPHFLOW_*`` environment variables and an optional
``.env`` file, and can be overridden from a YAML file:

    # graphflow.yaml
    max_iterations: 50
    checkpoint_backend: sqlite
    checkpoint_path: ~/.graphflow/checkpoints.db
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from graphflow.core.errors import ConfigurationError

# Global data directory for file-based checkpoint stores
GLOBAL_GRAPHFLOW_DIR = Path(os.getenv("GRAPHFLOW_HOME", str(Path.home() / ".graphflow")))

VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_CHECKPOINT_BACKENDS = ("memory", "sqlite", "json")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPHFLOW_",
        env_file=".env" if not os.getenv("GRAPHFLOW_SKIP_ENV_FILE") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Execution limits (per invoke/stream call)
    max_iterations: int = Field(default=100, gt=0)
    recursion_limit: int = Field(default=25, gt=0)
    execution_timeout: Optional[float] = None
    node_timeout: Optional[float] = None

    # Hand nodes a deep copy of state instead of a read-only live view
    copy_state: bool = True

    # Checkpointing
    checkpoint_backend: str = "memory"
    checkpoint_path: Optional[str] = None
    checkpoint_raise_on_write_error: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got {v!r}")
        return level

    @field_validator("checkpoint_backend")
    @classmethod
    def validate_checkpoint_backend(cls, v: str) -> str:
        backend = v.lower()
        if backend not in VALID_CHECKPOINT_BACKENDS:
            raise ValueError(
                f"checkpoint_backend must be one of {VALID_CHECKPOINT_BACKENDS}, got {v!r}"
            )
        return backend

    @field_validator("execution_timeout", "node_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"timeouts must be positive, got {v}")
        return v

    def resolve_checkpoint_path(self) -> Path:
        """Return the checkpoint location for file-based backends."""
        if self.checkpoint_path:
            return Path(os.path.expanduser(self.checkpoint_path))
        if self.checkpoint_backend == "json":
            return GLOBAL_GRAPHFLOW_DIR / "checkpoints"
        return GLOBAL_GRAPHFLOW_DIR / "checkpoints.db"

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides: Any) -> "Settings":
        """Load settings overrides from a YAML file.

        Values in the file take precedence over environment variables;
        keyword overrides take precedence over both.

        Args:
            path: YAML file containing a mapping of setting names to values.
                A top-level ``graphflow`` key is also accepted.
            **overrides: Explicit setting values

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If the file is missing or not a YAML mapping
        """
        config_file = Path(os.path.expanduser(str(path)))
        if not config_file.exists():
            raise ConfigurationError(f"Settings file not found: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file must contain a mapping: {config_file}")

        values: Dict[str, Any] = dict(data.get("graphflow", data))
        values.update(overrides)
        return cls(**values)


def load_settings() -> Settings:
    """Load application settings.

    Returns:
        Settings instance
    """
    return Settings()


__all__ = ["Settings", "load_settings", "GLOBAL_GRAPHFLOW_DIR"]
