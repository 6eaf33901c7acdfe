"""
Shared test fixtures for grid-assist tests.

Provides environment isolation for AssistSettings and a settings factory
with keyword overrides.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from grid_assist.src.config import AssistSettings

# All AssistSettings environment variable names, used for cleanup.
_ALL_ASSIST_ENV_VARS = tuple(name.upper() for name in AssistSettings.model_fields)


@pytest.fixture(autouse=True)
def _clean_assist_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all grid-assist env vars and isolate from .env files.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_ASSIST_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def make_settings() -> Callable[..., AssistSettings]:
    """Factory for AssistSettings with keyword overrides."""

    def _make(**overrides: object) -> AssistSettings:
        return AssistSettings(**overrides)

    return _make
