"""Mapping from device status codes to the glyph drawn next to each icon."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional

RED = "#ff1212"
ORANGE = "#ff9f00"
YELLOW = "#fff52a"
GREEN = "#23fd71"

DOT = "●"
SQUARE = "■"


class DeviceFamily(Enum):
    EARBUD = "earbud"
    PERIPHERAL = "peripheral"


class EarbudStatus(IntEnum):
    DISCONNECTED = 0
    WEARING = 1
    IDLE = 2
    IN_CASE = 3
    IN_CLOSED_CASE = 4


class PeripheralStatus(IntEnum):
    UNKNOWN = 0
    CHARGING = 1
    CHARGED = 2
    DISCHARGING = 3
    DISCONNECTED = 4


@dataclass(frozen=True)
class DisplayState:
    glyph: str
    color: str

    @property
    def rgb(self) -> tuple[int, int, int]:
        value = self.color.lstrip("#")
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


_STATES: dict[DeviceFamily, dict[int, DisplayState]] = {
    DeviceFamily.EARBUD: {
        EarbudStatus.DISCONNECTED: DisplayState(DOT, RED),
        EarbudStatus.WEARING: DisplayState(DOT, YELLOW),
        EarbudStatus.IDLE: DisplayState(DOT, ORANGE),
        EarbudStatus.IN_CASE: DisplayState(DOT, GREEN),
        EarbudStatus.IN_CLOSED_CASE: DisplayState(DOT, GREEN),
    },
    DeviceFamily.PERIPHERAL: {
        PeripheralStatus.UNKNOWN: DisplayState("?", RED),
        PeripheralStatus.CHARGING: DisplayState(DOT, GREEN),
        PeripheralStatus.CHARGED: DisplayState(SQUARE, GREEN),
        PeripheralStatus.DISCHARGING: DisplayState(DOT, YELLOW),
        PeripheralStatus.DISCONNECTED: DisplayState(DOT, RED),
    },
}


def resolve(family: DeviceFamily, status_code: Any) -> Optional[DisplayState]:
    """Return the display state for ``status_code``, or None when there is none.

    ``status_code`` is whatever JSON value the device sent. Integers and
    integral floats (``3.0``) look up the family table; strings, booleans,
    fractional numbers and codes outside the table all resolve to None.
    """
    if isinstance(status_code, bool):
        return None
    if isinstance(status_code, float):
        if not status_code.is_integer():
            return None
        status_code = int(status_code)
    if not isinstance(status_code, int):
        return None
    return _STATES[family].get(status_code)
