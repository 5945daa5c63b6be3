"""WebSocket handlers."""

from fastapi import WebSocket, WebSocketDisconnect

from .bridge import MessageBridge
from .state import StateStore


async def state_stream(websocket: WebSocket, store: StateStore) -> None:
    await websocket.accept()
    queue = store.subscribe()
    try:
        await websocket.send_json({"type": "ready", "states": store.snapshot()})
        while True:
            state_id, value = await queue.get()
            await websocket.send_json({"type": "state", "id": state_id, "value": value})
    except WebSocketDisconnect:
        return
    finally:
        store.unsubscribe(queue)


def handle_action_message(message: dict, bridge: MessageBridge) -> dict:
    action = str(message.get("action", "")).lower()
    if not action:
        raise ValueError("Missing `action` in message.")

    if action == "ping":
        return {"ok": True, "action": "pong", "bridge": bridge.state.value}

    if action == "keyboard-lock":
        value = str(message.get("value", "Toggle"))
        bridge.keyboard_lock(value)
        return {"ok": True, "action": action, "value": value}

    raise ValueError(f"Unsupported action: {action}")


async def control_stream(websocket: WebSocket, bridge: MessageBridge) -> None:
    await websocket.accept()
    await websocket.send_json(
        {
            "type": "ready",
            "protocol": "status-bridge-v1",
            "actions": ["ping", "keyboard-lock"],
        }
    )
    try:
        while True:
            message = await websocket.receive_json()
            try:
                response = handle_action_message(message=message, bridge=bridge)
                await websocket.send_json({"type": "ack", **response})
            except Exception as exc:
                await websocket.send_json({"type": "error", "ok": False, "error": str(exc)})
    except WebSocketDisconnect:
        return
