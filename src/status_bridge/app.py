"""FastAPI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse, Response

from .assets import AssetImageCache, FileAssetProvider
from .bridge import MessageBridge
from .clock import ClockTicker, clock_value
from .config import configure_logging, settings
from .errors import AssetLoadError
from .models import TelemetrySnapshot
from .renderer import CompositeRenderer
from .state import StateStore
from .topics import build_router
from .ws import control_stream, state_stream

log = logging.getLogger(__name__)

app = FastAPI(title="status-bridge", version="0.1.0")


def _publish_clock() -> None:
    app.state.store.update(settings.clock_state_id, clock_value(datetime.now()))


@app.on_event("startup")
async def startup() -> None:
    configure_logging(settings.log_level)
    app.state.store = StateStore()
    app.state.snapshot = TelemetrySnapshot()
    app.state.assets = AssetImageCache(FileAssetProvider(settings.assets_dir))
    app.state.renderer = CompositeRenderer(app.state.assets, font_path=settings.font_path)
    router = build_router(settings, app.state.snapshot, app.state.renderer)
    clock = None
    if settings.clock_enabled:
        clock = ClockTicker(_publish_clock, interval_sec=settings.clock_interval_sec)
    app.state.bridge = MessageBridge(
        router,
        app.state.store.update,
        inbound_endpoint=settings.inbound_endpoint,
        pattern=settings.pattern,
        outbound_endpoint=settings.outbound_endpoint if settings.outbound_enabled else None,
        handler_error_policy=settings.handler_error_policy,
        outbox_size=settings.outbox_size,
        clock=clock,
    )
    await app.state.bridge.start()
    log.info("%s initialization complete", settings.service_name)


@app.on_event("shutdown")
async def shutdown() -> None:
    await app.state.bridge.close()


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": settings.service_name, "bridge": app.state.bridge.state.value}


@app.get("/api/bridge")
def bridge_info() -> dict:
    return app.state.bridge.describe()


@app.get("/api/states")
def get_states() -> dict:
    return {"states": app.state.store.snapshot()}


@app.get("/api/states/{state_id}")
def get_state(state_id: str):
    value = app.state.store.get(state_id)
    if value is None:
        return JSONResponse({"ok": False, "error": "unknown_state"}, status_code=404)
    return {"id": state_id, "value": value}


@app.get("/api/snapshot")
def get_snapshot() -> dict:
    return app.state.snapshot.to_dict()


@app.get("/api/battery.png")
async def battery_image():
    try:
        png = await asyncio.to_thread(app.state.renderer.render, app.state.snapshot)
    except AssetLoadError as exc:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=503)
    return Response(content=png, media_type="image/png")


@app.post("/api/actions/keyboard-lock")
async def keyboard_lock(payload: dict | None = None) -> dict:
    value = str((payload or {}).get("value", "Toggle"))
    try:
        app.state.bridge.keyboard_lock(value)
    except (ValueError, RuntimeError) as exc:
        return {"ok": False, "error": str(exc)}
    return {"ok": True, "value": value}


@app.websocket("/ws/states")
async def states_ws(websocket: WebSocket) -> None:
    await state_stream(websocket, app.state.store)


@app.websocket("/ws/control")
async def control_ws(websocket: WebSocket) -> None:
    await control_stream(websocket, app.state.bridge)
