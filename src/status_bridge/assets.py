"""Device icon loading with one decode per asset name."""

from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import Callable, Iterable

from PIL import Image, UnidentifiedImageError

from .errors import AssetLoadError

log = logging.getLogger(__name__)

ICON_BUDS_LEFT = "left-bud.png"
ICON_BUDS_RIGHT = "right-bud.png"
ICON_HEADSET = "headset.png"
ICON_MOUSE = "mouse.png"
DEVICE_ICONS = (ICON_BUDS_LEFT, ICON_BUDS_RIGHT, ICON_HEADSET, ICON_MOUSE)

BytesProvider = Callable[[str], bytes]


class FileAssetProvider:
    """Reads asset bytes from a directory on disk."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def __call__(self, name: str) -> bytes:
        path = self.directory / name
        try:
            return path.read_bytes()
        except OSError as exc:
            raise AssetLoadError(name, exc) from exc


class AssetImageCache:
    """Decodes each named asset once and hands out the cached image afterwards.

    A per-name lock makes concurrent first calls wait for a single decode
    instead of racing. Failures are not cached.
    """

    def __init__(self, provider: BytesProvider) -> None:
        self._provider = provider
        self._images: dict[str, Image.Image] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock

    def get(self, name: str) -> Image.Image:
        image = self._images.get(name)
        if image is not None:
            return image
        with self._lock_for(name):
            image = self._images.get(name)
            if image is None:
                image = self._load(name)
                self._images[name] = image
        return image

    def preload(self, names: Iterable[str] = DEVICE_ICONS) -> dict[str, Image.Image]:
        return {name: self.get(name) for name in names}

    def loaded(self) -> tuple[str, ...]:
        return tuple(self._images)

    def _load(self, name: str) -> Image.Image:
        try:
            data = self._provider(name)
        except AssetLoadError:
            raise
        except Exception as exc:
            raise AssetLoadError(name, exc) from exc
        try:
            with Image.open(io.BytesIO(data)) as source:
                image = source.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise AssetLoadError(name, exc) from exc
        log.debug("Loaded asset %s (%dx%d)", name, image.width, image.height)
        return image
