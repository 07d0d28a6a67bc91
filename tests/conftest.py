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

"""Shared pytest fixtures and configuration."""

import os

import pytest

from graphflow.framework.checkpoint import MemoryCheckpointer


@pytest.fixture(autouse=True)
def isolate_environment_variables(monkeypatch, tmp_path):
    """Isolate tests from GRAPHFLOW_* environment variables and .env files.

    File-based checkpoint stores default to GRAPHFLOW_HOME, so it is pointed
    at a per-test directory to keep tests away from the user's data.
    """
    monkeypatch.setenv("GRAPHFLOW_SKIP_ENV_FILE", "1")

    for var in list(os.environ):
        if var.startswith("GRAPHFLOW_") and var != "GRAPHFLOW_SKIP_ENV_FILE":
            monkeypatch.delenv(var, raising=False)

    monkeypatch.setattr("graphflow.config.settings.GLOBAL_GRAPHFLOW_DIR", tmp_path / "home")


@pytest.fixture
def memory_checkpointer():
    """Fresh in-memory checkpointer."""
    return MemoryCheckpointer()
