import threading
import time

import pytest

from status_bridge.assets import DEVICE_ICONS, AssetImageCache, FileAssetProvider
from status_bridge.errors import AssetLoadError

from conftest import make_png


def test_asset_decoded_once(icon_provider) -> None:
    cache = AssetImageCache(icon_provider)
    first = cache.get("mouse.png")
    second = cache.get("mouse.png")
    assert first is second
    assert first.mode == "RGBA"
    assert icon_provider.calls == ["mouse.png"]


def test_preload_resolves_all_device_icons(icon_provider) -> None:
    cache = AssetImageCache(icon_provider)
    icons = cache.preload()
    assert set(icons) == set(DEVICE_ICONS)
    cache.preload()
    assert sorted(icon_provider.calls) == sorted(DEVICE_ICONS)


def test_concurrent_first_calls_share_one_load() -> None:
    calls = []

    def slow_provider(name: str) -> bytes:
        calls.append(name)
        time.sleep(0.05)
        return make_png()

    cache = AssetImageCache(slow_provider)
    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get("headset.png"))) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == ["headset.png"]
    assert len(results) == 8
    assert all(image is results[0] for image in results)


def test_missing_file_raises_asset_load_error(tmp_path) -> None:
    cache = AssetImageCache(FileAssetProvider(tmp_path))
    with pytest.raises(AssetLoadError) as excinfo:
        cache.get("left-bud.png")
    assert excinfo.value.name == "left-bud.png"


def test_failure_is_not_cached(tmp_path) -> None:
    cache = AssetImageCache(FileAssetProvider(tmp_path))
    with pytest.raises(AssetLoadError):
        cache.get("mouse.png")
    (tmp_path / "mouse.png").write_bytes(make_png())
    assert cache.get("mouse.png").size == (64, 64)


def test_undecodable_bytes_raise_asset_load_error() -> None:
    cache = AssetImageCache(lambda name: b"not an image")
    with pytest.raises(AssetLoadError, match="headset.png"):
        cache.get("headset.png")
    assert cache.loaded() == ()


def test_provider_exception_is_wrapped() -> None:
    def broken(name: str) -> bytes:
        raise KeyError(name)

    cache = AssetImageCache(broken)
    with pytest.raises(AssetLoadError) as excinfo:
        cache.get("mouse.png")
    assert isinstance(excinfo.value.cause, KeyError)
