import io
import math
import os

# Keep the app's sockets in-process during tests.
os.environ.setdefault("STATUS_BRIDGE_INBOUND_ENDPOINT", "inproc://status-bridge-app")
os.environ.setdefault("STATUS_BRIDGE_OUTBOUND_ENDPOINT", "inproc://status-bridge-app-downstream")
os.environ.setdefault("STATUS_BRIDGE_ASSETS_DIR", "/nonexistent/status-bridge-assets")

import pytest
import zmq.asyncio
from PIL import Image

from status_bridge.assets import AssetImageCache
from status_bridge.renderer import CIRCLE_R, CompositeRenderer, cell_origin

ICON_COLOR = (40, 40, 40, 255)


def make_png(color=ICON_COLOR, size=(64, 64)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class IconProvider:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, name: str) -> bytes:
        self.calls.append(name)
        return make_png()


@pytest.fixture
def icon_provider() -> IconProvider:
    return IconProvider()


@pytest.fixture
def assets(icon_provider) -> AssetImageCache:
    return AssetImageCache(icon_provider)


@pytest.fixture
def renderer(assets) -> CompositeRenderer:
    return CompositeRenderer(assets)


@pytest.fixture
def gauge_pixel():
    """Pixel on a gauge at ``theta`` degrees clockwise from 12 o'clock."""

    def pixel(image: Image.Image, grid_x: int, grid_y: int, theta: float, radius: float = 86.0):
        x0, y0 = cell_origin(grid_x, grid_y)
        x = x0 + CIRCLE_R + radius * math.sin(math.radians(theta))
        y = y0 + CIRCLE_R - radius * math.cos(math.radians(theta))
        return image.getpixel((int(round(x)), int(round(y))))

    return pixel


@pytest.fixture
def zmq_context():
    ctx = zmq.asyncio.Context()
    yield ctx
    ctx.destroy(linger=0)
