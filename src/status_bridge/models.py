"""Device readings and the merged telemetry snapshot."""

from __future__ import annotations

from threading import Lock
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SLOT_BUDS_LEFT = "budsLeft"
SLOT_BUDS_RIGHT = "budsRight"
SLOT_HEADSET = "headset"
SLOT_MOUSE = "mouse"
SLOTS = (SLOT_BUDS_LEFT, SLOT_BUDS_RIGHT, SLOT_HEADSET, SLOT_MOUSE)


class EarbudReading(BaseModel):
    """One earbud: battery percent and earbud status code."""

    model_config = ConfigDict(frozen=True)

    battery: Optional[float] = None
    status: Optional[Any] = None


class PeripheralReading(BaseModel):
    """Headset or mouse reading as reported by the peripheral daemon."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    battery_level: Optional[float] = Field(default=None, alias="batteryLevel")
    # Not rendered; kept so the wire object round-trips.
    extra_battery_level: Optional[float] = Field(default=None, alias="extraBatteryLevel")
    status: Optional[Any] = None


Reading = Union[EarbudReading, PeripheralReading]


class BudsPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    left_battery: Optional[float] = Field(default=None, alias="leftBattery")
    right_battery: Optional[float] = Field(default=None, alias="rightBattery")
    left_state: Optional[Any] = Field(default=None, alias="leftState")
    right_state: Optional[Any] = Field(default=None, alias="rightState")

    def split(self) -> tuple[EarbudReading, EarbudReading]:
        return (
            EarbudReading(battery=self.left_battery, status=self.left_state),
            EarbudReading(battery=self.right_battery, status=self.right_state),
        )


class BatteryUpdate(BaseModel):
    """Partial battery update as sent on the telemetry topic.

    Only the keys present in the JSON object take part in the merge. A key
    explicitly set to ``null`` clears the slots it covers.
    """

    model_config = ConfigDict(extra="ignore")

    buds: Optional[BudsPayload] = None
    headset: Optional[PeripheralReading] = None
    mouse: Optional[PeripheralReading] = None

    def to_partial(self) -> dict[str, Optional[Reading]]:
        partial: dict[str, Optional[Reading]] = {}
        fields = self.model_fields_set
        if "buds" in fields:
            left, right = self.buds.split() if self.buds is not None else (None, None)
            partial[SLOT_BUDS_LEFT] = left
            partial[SLOT_BUDS_RIGHT] = right
        if "headset" in fields:
            partial[SLOT_HEADSET] = self.headset
        if "mouse" in fields:
            partial[SLOT_MOUSE] = self.mouse
        return partial


class TelemetrySnapshot:
    """Latest reading per device slot, updated by per-slot merges.

    A slot present in a partial update replaces the whole prior reading for
    that slot; slots absent from the update are left untouched.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._slots: dict[str, Optional[Reading]] = dict.fromkeys(SLOTS)
        self._view = MappingProxyType(self._slots)

    def merge(self, partial: Mapping[str, Optional[Reading]]) -> None:
        unknown = [key for key in partial if key not in self._slots]
        if unknown:
            raise ValueError(f"Unknown snapshot slot(s): {', '.join(sorted(unknown))}")
        with self._lock:
            self._slots.update(partial)

    def current(self) -> Mapping[str, Optional[Reading]]:
        return self._view

    def get(self, slot: str) -> Optional[Reading]:
        return self._slots[slot]

    def to_dict(self) -> dict[str, dict | None]:
        with self._lock:
            items = list(self._slots.items())
        return {slot: (reading.model_dump(by_alias=True) if reading is not None else None) for slot, reading in items}
