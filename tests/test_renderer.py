import base64
import io
from pathlib import Path

import pytest
from PIL import Image

from status_bridge.assets import AssetImageCache
from status_bridge.battery_state import GREEN, DisplayState
from status_bridge.errors import AssetLoadError
from status_bridge.models import EarbudReading, PeripheralReading, TelemetrySnapshot
from status_bridge.renderer import FONT_CANDIDATES, HEIGHT, RING_COLOR, WIDTH, CompositeRenderer, sweep_degrees

TRANSPARENT_ALPHA = 0


def _decode(png: bytes) -> Image.Image:
    return Image.open(io.BytesIO(png)).convert("RGBA")


def test_surface_size() -> None:
    assert WIDTH == HEIGHT == 415


def test_empty_snapshot_renders_png(renderer) -> None:
    png = renderer.render(TelemetrySnapshot())
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
    image = _decode(png)
    assert image.size == (WIDTH, HEIGHT)


@pytest.mark.parametrize("percent, expected", [(None, 0.0), (0, 0.0), (-10, 0.0), (50, 180.0), (100, 360.0), (150, 360.0)])
def test_sweep_degrees(percent, expected) -> None:
    assert sweep_degrees(percent) == expected


@pytest.mark.parametrize("out_of_range, clamped", [(-10, 0), (150, 100)])
def test_percent_is_clamped_before_drawing(renderer, out_of_range, clamped) -> None:
    a = renderer.render({"headset": PeripheralReading(battery_level=out_of_range, status=1)})
    b = renderer.render({"headset": PeripheralReading(battery_level=clamped, status=1)})
    assert a == b


def test_identical_snapshots_render_identical_bytes(icon_provider) -> None:
    snapshot = TelemetrySnapshot()
    snapshot.merge(
        {
            "budsLeft": EarbudReading(battery=80, status=3),
            "budsRight": EarbudReading(battery=75, status=1),
            "headset": PeripheralReading(battery_level=33, status=3),
            "mouse": PeripheralReading(battery_level=100, status=2),
        }
    )
    first = CompositeRenderer(AssetImageCache(icon_provider)).render(snapshot)
    second = CompositeRenderer(AssetImageCache(icon_provider)).render(snapshot)
    assert first == second


def test_arc_follows_percentage(renderer, gauge_pixel) -> None:
    image = _decode(renderer.render({"budsLeft": EarbudReading(battery=80, status=3)}))
    assert gauge_pixel(image, 0, 0, 30) == RING_COLOR
    assert gauge_pixel(image, 0, 0, 280) == RING_COLOR
    assert gauge_pixel(image, 0, 0, 310)[3] == TRANSPARENT_ALPHA
    # Other gauges have no reading: rings only, no arc.
    assert gauge_pixel(image, 1, 0, 30)[3] == TRANSPARENT_ALPHA
    assert gauge_pixel(image, 0, 1, 30)[3] == TRANSPARENT_ALPHA


def test_missing_state_draws_no_glyph(renderer) -> None:
    with_state = _decode(renderer.render({"mouse": PeripheralReading(battery_level=50, status=1)}))
    without_state = _decode(renderer.render({"mouse": PeripheralReading(battery_level=50, status=9)}))
    plain = _decode(renderer.render({"mouse": PeripheralReading(battery_level=50)}))
    assert without_state.tobytes() == plain.tobytes()
    assert with_state.tobytes() != plain.tobytes()


def test_state_glyph_is_drawn_in_glyph_region(renderer) -> None:
    with_state = _decode(renderer.render({"budsLeft": EarbudReading(battery=80, status=3)}))
    plain = _decode(renderer.render({"budsLeft": EarbudReading(battery=80)}))
    # Glyph is centred at cell origin + 65 on both axes.
    glyph_box = (55, 55, 86, 86)
    assert with_state.crop(glyph_box).tobytes() != plain.crop(glyph_box).tobytes()
    other_cells = (WIDTH // 2, 0, WIDTH, HEIGHT)
    assert with_state.crop(other_cells).tobytes() == plain.crop(other_cells).tobytes()


@pytest.mark.skipif(not any(Path(p).exists() for p in FONT_CANDIDATES), reason="no glyph font installed")
def test_state_glyph_uses_state_color(renderer) -> None:
    image = _decode(renderer.render({"budsLeft": EarbudReading(battery=80, status=3)}))
    green = DisplayState("●", GREEN).rgb + (255,)
    # Glyph is centred at cell origin + 65 on both axes.
    region = [image.getpixel((x, y)) for x in range(55, 86) for y in range(55, 86)]
    assert green in region


def test_base64_output_decodes_to_png(renderer) -> None:
    encoded = renderer.render_base64(TelemetrySnapshot())
    assert base64.b64decode(encoded).startswith(b"\x89PNG")


def test_asset_failure_propagates() -> None:
    def missing(name: str) -> bytes:
        raise FileNotFoundError(name)

    renderer = CompositeRenderer(AssetImageCache(missing))
    with pytest.raises(AssetLoadError):
        renderer.render(TelemetrySnapshot())
