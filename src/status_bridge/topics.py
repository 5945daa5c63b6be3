"""Topic transforms and the handler registry built at startup."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .errors import PayloadDecodeError
from .models import BatteryUpdate, TelemetrySnapshot
from .renderer import CompositeRenderer
from .router import TopicHandler, TopicRouter, Transform

log = logging.getLogger(__name__)

TOPIC_KEYBOARD_LOCK = "ChangeKeyboardLockState"
TOPIC_BATTERY = "BatteryMonitorUpdate"

KIND_BOOLEAN = "boolean"
KIND_PASSTHROUGH = "passthrough"
KIND_BATTERY_IMAGE = "battery_image"
KINDS = (KIND_BOOLEAN, KIND_PASSTHROUGH, KIND_BATTERY_IMAGE)


def boolean_label(true_label: str, false_label: str) -> Transform:
    """Map the payload ``"true"`` to ``true_label`` and anything else to ``false_label``."""

    def transform(payload: str) -> str:
        return true_label if payload == "true" else false_label

    return transform


def passthrough(payload: str) -> str:
    return payload


def decode_battery_update(payload: str) -> BatteryUpdate:
    try:
        return BatteryUpdate.model_validate_json(payload)
    except ValidationError as exc:
        raise PayloadDecodeError(None, exc, f"invalid battery payload ({exc.error_count()} error(s))") from exc


class BatteryImageTransform:
    """Merges a partial battery update and re-renders the dashboard."""

    def __init__(self, snapshot: TelemetrySnapshot, renderer: CompositeRenderer) -> None:
        self.snapshot = snapshot
        self.renderer = renderer

    async def __call__(self, payload: str) -> str:
        update = decode_battery_update(payload)
        # An asset failure must leave the snapshot untouched.
        await asyncio.to_thread(self.renderer.preload_icons)
        self.snapshot.merge(update.to_partial())
        return await asyncio.to_thread(self.renderer.render_base64, self.snapshot)


def default_topic_config(settings: Any) -> dict[str, dict[str, Any]]:
    return {
        TOPIC_KEYBOARD_LOCK: {
            "state_id": settings.lock_state_id,
            "kind": KIND_BOOLEAN,
            "true_label": settings.lock_true_label,
            "false_label": settings.lock_false_label,
        },
        TOPIC_BATTERY: {
            "state_id": settings.battery_state_id,
            "kind": KIND_BATTERY_IMAGE,
        },
    }


def load_topic_file(path: str) -> dict[str, dict[str, Any]]:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        payload = json.loads(text)
    else:
        payload = yaml.safe_load(text)
    if not isinstance(payload, dict) or not isinstance(payload.get("topics"), dict):
        raise ValueError("Topics file must contain a `topics` mapping.")
    topics = payload["topics"]
    for topic, entry in topics.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Topic `{topic}` must be a mapping.")
    return topics


def merge_topic_config(
    base: Mapping[str, Mapping[str, Any]],
    overrides: Mapping[str, Mapping[str, Any]],
) -> dict[str, dict[str, Any]]:
    merged = {topic: dict(entry) for topic, entry in base.items()}
    for topic, entry in overrides.items():
        merged[str(topic)] = {**merged.get(str(topic), {}), **entry}
    return merged


def build_handler(topic: str, entry: Mapping[str, Any], snapshot: TelemetrySnapshot, renderer: CompositeRenderer) -> TopicHandler:
    state_id = str(entry.get("state_id") or "").strip()
    if not state_id:
        raise ValueError(f"Topic `{topic}` is missing `state_id`.")
    kind = str(entry.get("kind", KIND_PASSTHROUGH)).lower()
    if kind == KIND_BOOLEAN:
        if "true_label" not in entry or "false_label" not in entry:
            raise ValueError(f"Boolean topic `{topic}` needs both `true_label` and `false_label`.")
        transform = boolean_label(str(entry["true_label"]), str(entry["false_label"]))
    elif kind == KIND_PASSTHROUGH:
        transform = passthrough
    elif kind == KIND_BATTERY_IMAGE:
        transform = BatteryImageTransform(snapshot, renderer)
    else:
        raise ValueError(f"Topic `{topic}` has unsupported kind `{kind}`; expected one of {', '.join(KINDS)}.")
    return TopicHandler(target_state_id=state_id, transform=transform)


def build_router(settings: Any, snapshot: TelemetrySnapshot, renderer: CompositeRenderer) -> TopicRouter:
    config = default_topic_config(settings)
    topics_path = str(getattr(settings, "topics_path", "") or "").strip()
    if topics_path:
        config = merge_topic_config(config, load_topic_file(topics_path))
        log.info("Loaded topic overrides from %s", topics_path)
    handlers = {topic: build_handler(topic, entry, snapshot, renderer) for topic, entry in config.items()}
    for topic, handler in handlers.items():
        log.debug("Topic %s -> %s", topic, handler.target_state_id)
    return TopicRouter(handlers)
