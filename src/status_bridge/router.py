"""Topic to state routing."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Union

from .errors import HandlerError

Transform = Callable[[str], Union[str, Awaitable[str]]]


@dataclass(frozen=True)
class TopicHandler:
    target_state_id: str
    transform: Transform


@dataclass(frozen=True)
class Dispatch:
    target_state_id: str
    value: str


@dataclass(frozen=True)
class UnknownTopic:
    """Returned for topics without a handler; callers log it and move on."""

    topic: str


class TopicRouter:
    def __init__(self, handlers: Mapping[str, TopicHandler]) -> None:
        self._handlers = dict(handlers)

    def topics(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def handler_for(self, topic: str) -> TopicHandler | None:
        return self._handlers.get(topic)

    async def dispatch(self, topic: str, payload: str) -> Dispatch | UnknownTopic:
        """Run the transform registered for ``topic``.

        Transform failures surface as ``HandlerError`` carrying the topic.
        """
        handler = self._handlers.get(topic)
        if handler is None:
            return UnknownTopic(topic)
        try:
            value = handler.transform(payload)
            if inspect.isawaitable(value):
                value = await value
        except HandlerError as exc:
            if exc.topic is None:
                exc.topic = topic
            raise
        except Exception as exc:
            raise HandlerError(topic, exc) from exc
        return Dispatch(target_state_id=handler.target_state_id, value=str(value))
