"""
Inbound telemetry events and their boundary parsing.

Every external feed maps to one event variant, discriminated by ``kind``:

- ``grid_power``: signed grid power in W (+ import, - export), with an
  optional timestamp.
- ``soc`` / ``soc_reserve``: battery state of charge and reserve floor (%).
- ``actuator_output``: signed actuator output in W (+ supplies the house).
- ``bms_state``: free-text charge/discharge state (telemetry only).
- ``strategy``: energy-strategy indicator, either an object or a string.

Adapters deliver numbers as numbers or strings, sometimes with a comma
decimal separator. Values are coerced here, once, and anything that does
not yield a finite number is rejected before it reaches the controller.

CHANGELOG:
- 2026-10-18: Accept JSON-encoded strategy strings (STORY-009)
- 2026-10-18: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

import json
import math
from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from grid_assist.src.errors import EventRejectedError

SELF_POWERED_KEY = "operateSelfPoweredOpen"
"""Strategy flag that must equal 1 when the actuator runs self-powered."""

_SELF_POWERED_LITERAL = f'"{SELF_POWERED_KEY}":1'


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------


def to_number(value: Any) -> float:
    """Coerce an adapter value into a finite float.

    Accepts ints, floats and numeric strings using either ``.`` or ``,``
    as decimal separator.

    Raises:
        ValueError: For booleans, None, non-finite or out-of-range values
            and strings that do not parse.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise ValueError("number out of float range") from None
    else:
        try:
            number = float(str(value).strip().replace(",", ".", 1))
        except ValueError:
            raise ValueError(f"not a number: {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


def _percent(value: float) -> float:
    if not 0.0 <= value <= 100.0:
        raise ValueError(f"percentage out of range: {value}")
    return value


Number = Annotated[float, BeforeValidator(to_number)]
Percent = Annotated[float, BeforeValidator(to_number), AfterValidator(_percent)]


def assume_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Strategy values (object form vs. string form)
# ---------------------------------------------------------------------------


class StrategyObject(BaseModel):
    """Strategy indicator delivered as a structured object."""

    form: Literal["object"] = "object"
    payload: dict[str, Any]

    @property
    def is_self_powered(self) -> bool:
        flag = self.payload.get(SELF_POWERED_KEY)
        return flag == 1 and not isinstance(flag, bool)

    @property
    def raw(self) -> str:
        return json.dumps(self.payload, separators=(",", ":"))


class StrategyText(BaseModel):
    """Strategy indicator delivered as a plain or JSON-encoded string."""

    form: Literal["text"] = "text"
    text: str

    @property
    def is_self_powered(self) -> bool:
        try:
            decoded = json.loads(self.text)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return StrategyObject(payload=decoded).is_self_powered
        return _SELF_POWERED_LITERAL in self.text.replace(" ", "")

    @property
    def raw(self) -> str:
        return self.text


StrategyValue = Union[StrategyObject, StrategyText]


def parse_strategy(value: Any) -> StrategyObject | StrategyText:
    """Tag a duck-typed strategy value as object form or string form."""
    if isinstance(value, (StrategyObject, StrategyText)):
        return value
    if isinstance(value, dict):
        return StrategyObject(payload=value)
    return StrategyText(text="" if value is None else str(value))


# ---------------------------------------------------------------------------
# Event variants
# ---------------------------------------------------------------------------


class GridPowerEvent(BaseModel):
    """Grid meter sample. Positive = import, negative = export."""

    kind: Literal["grid_power"] = "grid_power"
    value: Number
    ts: datetime | None = None

    @field_validator("ts")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        return assume_utc(v)


class SocEvent(BaseModel):
    kind: Literal["soc"] = "soc"
    value: Percent


class SocReserveEvent(BaseModel):
    kind: Literal["soc_reserve"] = "soc_reserve"
    value: Percent


class ActuatorOutputEvent(BaseModel):
    """Actuator-reported net output. Positive = supplies the house."""

    kind: Literal["actuator_output"] = "actuator_output"
    value: Number


class BmsStateEvent(BaseModel):
    kind: Literal["bms_state"] = "bms_state"
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)


class StrategyEvent(BaseModel):
    kind: Literal["strategy"] = "strategy"
    value: StrategyValue

    @field_validator("value", mode="before")
    @classmethod
    def _tag(cls, v: Any) -> StrategyObject | StrategyText:
        return parse_strategy(v)


class KeepaliveTick(BaseModel):
    """Internal timer event; never parsed from the feed."""

    kind: Literal["keepalive_tick"] = "keepalive_tick"


TelemetryEvent = Annotated[
    Union[
        GridPowerEvent,
        SocEvent,
        SocReserveEvent,
        ActuatorOutputEvent,
        BmsStateEvent,
        StrategyEvent,
    ],
    Field(discriminator="kind"),
]

Event = Union[
    GridPowerEvent,
    SocEvent,
    SocReserveEvent,
    ActuatorOutputEvent,
    BmsStateEvent,
    StrategyEvent,
    KeepaliveTick,
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(TelemetryEvent)


def parse_event(payload: Any) -> Event:
    """Validate one decoded feed payload into a typed event.

    Args:
        payload: A decoded JSON value, expected to be an object with a
            ``kind`` field naming one of the telemetry variants.

    Returns:
        The matching event model.

    Raises:
        EventRejectedError: If the payload is not an object, names an
            unknown kind, or carries a value that does not validate.
    """
    kind = payload.get("kind") if isinstance(payload, dict) else None
    try:
        return _EVENT_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise EventRejectedError(errors, kind=kind) from exc
