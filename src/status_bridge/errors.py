"""Error taxonomy shared by the router, renderer and bridge loops."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for status-bridge failures."""


class AssetLoadError(BridgeError):
    """An icon could not be read from its provider or decoded."""

    def __init__(self, name: str, cause: BaseException | None = None) -> None:
        super().__init__(name, cause)
        self.name = name
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return f"Failed to load asset `{self.name}`"
        return f"Failed to load asset `{self.name}`: {self.cause}"


class HandlerError(BridgeError):
    """A topic transform failed.

    Transforms may raise it without a topic; the router fills the topic in
    before the error reaches the receive loop.
    """

    def __init__(
        self,
        topic: str | None,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(topic, cause)
        self.topic = topic
        self.cause = cause
        if message is None:
            message = str(cause) if cause is not None else "handler failed"
        self.message = message

    def __str__(self) -> str:
        return f"Handler for `{self.topic}` failed: {self.message}"


class PayloadDecodeError(HandlerError):
    """Telemetry payload is not valid JSON or does not match a reading."""
