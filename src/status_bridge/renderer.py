"""Battery dashboard: a 2x2 grid of radial gauges encoded as PNG."""

from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import Any, Mapping, Optional

from PIL import Image, ImageDraw, ImageFont

from .assets import DEVICE_ICONS, ICON_BUDS_LEFT, ICON_BUDS_RIGHT, ICON_HEADSET, ICON_MOUSE, AssetImageCache
from .battery_state import DeviceFamily, DisplayState, resolve
from .models import (
    SLOT_BUDS_LEFT,
    SLOT_BUDS_RIGHT,
    SLOT_HEADSET,
    SLOT_MOUSE,
    EarbudReading,
    Reading,
    TelemetrySnapshot,
)

CIRCLE_R = 100
PADDING = 5
STROKE_THIN = 2
STROKE_THICK = 25
IMAGE_SIZE = 100
GLYPH_SIZE = 36
GLYPH_INSET = 15
# 2 circles per row + 3 paddings (left, right, between)
WIDTH = CIRCLE_R * 4 + PADDING * 3
HEIGHT = CIRCLE_R * 4 + PADDING * 3

START_ANGLE = -90.0
RING_COLOR = (255, 255, 255, 255)

FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
)

# (grid x, grid y, snapshot slot, family, icon)
GAUGES = (
    (0, 0, SLOT_BUDS_LEFT, DeviceFamily.EARBUD, ICON_BUDS_LEFT),
    (1, 0, SLOT_BUDS_RIGHT, DeviceFamily.EARBUD, ICON_BUDS_RIGHT),
    (0, 1, SLOT_HEADSET, DeviceFamily.PERIPHERAL, ICON_HEADSET),
    (1, 1, SLOT_MOUSE, DeviceFamily.PERIPHERAL, ICON_MOUSE),
)


def sweep_degrees(percent: Optional[float]) -> float:
    """Clockwise arc sweep for a battery percentage; absent counts as 0."""
    value = float(percent or 0)
    return 360.0 * min(100.0, max(0.0, value)) / 100.0


def cell_origin(grid_x: int, grid_y: int) -> tuple[int, int]:
    return (
        PADDING * (grid_x + 1) + (CIRCLE_R * 2) * grid_x,
        PADDING * (grid_y + 1) + (CIRCLE_R * 2) * grid_y,
    )


def _reading_values(reading: Optional[Reading]) -> tuple[Optional[float], Any]:
    if reading is None:
        return None, None
    if isinstance(reading, EarbudReading):
        return reading.battery, reading.status
    return reading.battery_level, reading.status


def _load_font(size: int, font_path: str = "") -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    candidates = ((font_path,) if font_path else ()) + FONT_CANDIDATES
    for path in candidates:
        if Path(path).exists():
            return ImageFont.truetype(path, size=size)
    return ImageFont.load_default(size=size)


def _stroke_arc(
    draw: ImageDraw.ImageDraw,
    center: tuple[float, float],
    radius: float,
    width: int,
    start: float = 0.0,
    end: float = 360.0,
) -> None:
    # PIL strokes inward from the bounding box; centre the line on `radius`.
    outer = radius + width / 2
    cx, cy = center
    bbox = (cx - outer, cy - outer, cx + outer, cy + outer)
    draw.arc(bbox, start=start, end=end, fill=RING_COLOR, width=width)


class CompositeRenderer:
    """Draws the four battery gauges onto a fresh surface on every call."""

    def __init__(self, assets: AssetImageCache, font_path: str = "") -> None:
        self._assets = assets
        self._font = _load_font(GLYPH_SIZE, font_path)

    def preload_icons(self) -> dict[str, Image.Image]:
        """Decode every device icon, raising ``AssetLoadError`` if one is unusable."""
        return self._assets.preload(DEVICE_ICONS)

    def render_image(self, snapshot: TelemetrySnapshot | Mapping[str, Optional[Reading]]) -> Image.Image:
        slots = snapshot.current() if isinstance(snapshot, TelemetrySnapshot) else snapshot
        icons = self.preload_icons()

        canvas = Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        for grid_x, grid_y, slot, family, icon in GAUGES:
            percent, status = _reading_values(slots.get(slot))
            self._draw_gauge(
                canvas,
                draw,
                cell_origin(grid_x, grid_y),
                percent,
                resolve(family, status),
                icons[icon],
            )
        return canvas

    def render(self, snapshot: TelemetrySnapshot | Mapping[str, Optional[Reading]]) -> bytes:
        buffer = io.BytesIO()
        self.render_image(snapshot).save(buffer, format="PNG")
        return buffer.getvalue()

    def render_base64(self, snapshot: TelemetrySnapshot | Mapping[str, Optional[Reading]]) -> str:
        return base64.b64encode(self.render(snapshot)).decode("ascii")

    def _draw_gauge(
        self,
        canvas: Image.Image,
        draw: ImageDraw.ImageDraw,
        origin: tuple[int, int],
        percent: Optional[float],
        state: Optional[DisplayState],
        icon: Image.Image,
    ) -> None:
        x, y = origin
        center = (x + CIRCLE_R, y + CIRCLE_R)
        inset_radius = CIRCLE_R - STROKE_THIN / 2

        _stroke_arc(draw, center, inset_radius, STROKE_THIN)
        _stroke_arc(draw, center, inset_radius - STROKE_THICK, STROKE_THIN)

        if icon.size != (IMAGE_SIZE, IMAGE_SIZE):
            icon = icon.resize((IMAGE_SIZE, IMAGE_SIZE), Image.LANCZOS)
        pos = CIRCLE_R - IMAGE_SIZE // 2
        canvas.alpha_composite(icon, dest=(x + pos, y + pos))

        sweep = sweep_degrees(percent)
        if sweep > 0:
            _stroke_arc(
                draw,
                center,
                inset_radius - STROKE_THICK / 2,
                STROKE_THICK,
                start=START_ANGLE,
                end=START_ANGLE + sweep,
            )

        if state is not None:
            glyph_pos = CIRCLE_R - IMAGE_SIZE // 2 + GLYPH_INSET
            draw.text(
                (x + glyph_pos, y + glyph_pos),
                state.glyph,
                fill=state.rgb + (255,),
                font=self._font,
                anchor="mm",
            )
