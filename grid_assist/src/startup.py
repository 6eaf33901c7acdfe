"""
Last-known values used to prime the controller at startup.

The daemon has no persistence of its own. On restart it can be handed a
JSON object with the last values the adapters saw, so the first cycle
starts from live-looking state instead of zeros:

    {"grid_power": 312, "grid_ts": "2026-10-18T07:00:00Z", "soc": 54.2,
     "soc_reserve": 20, "actuator_output": "140,5", "bms_state": "discharging",
     "strategy": {"operateSelfPoweredOpen": 1}}

Every key is optional and parsed with the same rules as feed events; an
entry that does not parse is ignored with a warning, the rest still apply.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from grid_assist.src.errors import ConfigError
from grid_assist.src.events import (
    Number,
    Percent,
    StrategyObject,
    StrategyText,
    StrategyValue,
    assume_utc,
    parse_strategy,
)

logger = logging.getLogger(__name__)


class InitialState(BaseModel):
    """Optional last-known values for startup priming."""

    grid_power: Number | None = None
    grid_ts: datetime | None = None
    soc: Percent | None = None
    soc_reserve: Percent | None = None
    actuator_output: Number | None = None
    bms_state: str | None = None
    strategy: StrategyValue | None = None

    @field_validator("grid_ts")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        return assume_utc(v)

    @field_validator("bms_state", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("strategy", mode="before")
    @classmethod
    def _tag(cls, v: Any) -> StrategyObject | StrategyText | None:
        return None if v is None else parse_strategy(v)


def parse_initial_state(raw: Any) -> InitialState:
    """Validate a decoded object field by field, dropping invalid entries.

    Raises:
        ConfigError: If *raw* is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"initial state must be a JSON object, got {type(raw).__name__}")

    accepted: dict[str, Any] = {}
    for name in InitialState.model_fields:
        if name not in raw:
            continue
        try:
            parsed = InitialState.model_validate({name: raw[name]})
        except ValidationError:
            logger.warning("Initial state entry '%s' ignored: %r", name, raw[name])
            continue
        accepted[name] = getattr(parsed, name)

    unknown = sorted(set(raw) - set(InitialState.model_fields))
    if unknown:
        logger.warning("Initial state has unknown keys: %s", ", ".join(unknown))

    return InitialState(**accepted)


def load_initial_state(path: str | Path) -> InitialState:
    """Read and parse a priming file.

    Raises:
        ConfigError: If the file cannot be read or is not a JSON object.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except OSError as exc:
        raise ConfigError(f"cannot read initial state file {path}: {exc}") from exc
    except (ValueError, RecursionError) as exc:
        raise ConfigError(f"initial state file {path} is not valid JSON: {exc}") from exc
    return parse_initial_state(raw)
