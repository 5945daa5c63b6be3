"""ZeroMQ endpoints feeding the topic router."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Sequence

import zmq
import zmq.asyncio

from .clock import ClockTicker
from .errors import HandlerError
from .router import TopicRouter, UnknownTopic
from .topics import TOPIC_KEYBOARD_LOCK

log = logging.getLogger(__name__)

PATTERN_REQREP = "reqrep"
PATTERN_PUBSUB = "pubsub"
PATTERNS = (PATTERN_REQREP, PATTERN_PUBSUB)

POLICY_NACK = "nack"
POLICY_FATAL = "fatal"
POLICIES = (POLICY_NACK, POLICY_FATAL)

KEYBOARD_LOCK_VALUES = ("Toggle", "Enable", "Disable")
OUTBOX_SIZE = 16

StateSink = Callable[[str, str], None]


class BridgeState(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    RECEIVING = "receiving"
    CLOSED = "closed"


class ReplyToken(str, Enum):
    """Reply vocabulary of the request-reply endpoint.

    ACK: frame dispatched and the state sink updated.
    NACK: no handler registered for the topic.
    ERROR: malformed frame or the handler failed.
    """

    ACK = "ACK"
    NACK = "NACK"
    ERROR = "ERROR"


class MessageBridge:
    """Owns the inbound (and optional outbound) socket and their receive loops.

    ``reqrep``: REP socket bound on the inbound endpoint, exactly one reply per
    frame. A REQ socket on the outbound endpoint carries queued requests.
    ``pubsub``: SUB socket connected to the inbound endpoint and subscribed to
    every routed topic; frames are never answered.
    """

    def __init__(
        self,
        router: TopicRouter,
        sink: StateSink,
        *,
        inbound_endpoint: str,
        pattern: str = PATTERN_REQREP,
        outbound_endpoint: str | None = None,
        handler_error_policy: str = POLICY_NACK,
        outbox_size: int = OUTBOX_SIZE,
        clock: ClockTicker | None = None,
        context: zmq.asyncio.Context | None = None,
    ) -> None:
        if pattern not in PATTERNS:
            raise ValueError(f"`pattern` must be one of {', '.join(PATTERNS)}.")
        if handler_error_policy not in POLICIES:
            raise ValueError(f"`handler_error_policy` must be one of {', '.join(POLICIES)}.")
        if outbox_size < 1:
            raise ValueError("`outbox_size` must be at least 1.")
        self.router = router
        self.pattern = pattern
        self.inbound_endpoint = inbound_endpoint
        self.outbound_endpoint = outbound_endpoint if pattern == PATTERN_REQREP else None
        self.handler_error_policy = handler_error_policy
        self.outbox_size = outbox_size
        self.clock = clock
        self.state = BridgeState.UNBOUND
        self.fatal_error: HandlerError | None = None
        self.closed = asyncio.Event()
        self._sink = sink
        self._owns_context = context is None
        self._context = context
        self._inbound: zmq.asyncio.Socket | None = None
        self._outbound: zmq.asyncio.Socket | None = None
        self._outbox: asyncio.Queue[tuple[str, str]] | None = None
        self._tasks: list[asyncio.Task] = []
        self._closing: asyncio.Task | None = None

    def describe(self) -> dict:
        return {
            "state": self.state.value,
            "pattern": self.pattern,
            "inbound_endpoint": self.inbound_endpoint,
            "outbound_endpoint": self.outbound_endpoint,
            "outbox_depth": self.outbox_depth,
            "topics": list(self.router.topics()),
        }

    async def start(self) -> None:
        # Restart: the old clock task must go before sockets come back up.
        if self.clock is not None:
            self.clock.stop()
        if self.state in (BridgeState.BOUND, BridgeState.RECEIVING):
            await self.close()

        if self._owns_context:
            self._context = zmq.asyncio.Context()
        self.fatal_error = None
        self.closed.clear()
        self._bind()
        self.state = BridgeState.BOUND

        loop = asyncio.get_running_loop()
        self._tasks = [loop.create_task(self._inbound_loop(), name="bridge-inbound")]
        if self._outbound is not None:
            self._tasks.append(loop.create_task(self._outbound_loop(), name="bridge-outbound"))
        for task in self._tasks:
            task.add_done_callback(self._log_task_exit)
        self.state = BridgeState.RECEIVING

        if self.clock is not None:
            self.clock.start()
        log.info("Bridge receiving on %s (%s)", self.inbound_endpoint, self.pattern)

    def _bind(self) -> None:
        if self.pattern == PATTERN_REQREP:
            inbound = self._context.socket(zmq.REP)
            inbound.setsockopt(zmq.LINGER, 0)
            inbound.bind(self.inbound_endpoint)
        else:
            inbound = self._context.socket(zmq.SUB)
            inbound.setsockopt(zmq.LINGER, 0)
            inbound.connect(self.inbound_endpoint)
            for topic in self.router.topics():
                inbound.setsockopt_string(zmq.SUBSCRIBE, topic)
        self._inbound = inbound

        if self.outbound_endpoint:
            outbound = self._context.socket(zmq.REQ)
            outbound.setsockopt(zmq.LINGER, 0)
            outbound.connect(self.outbound_endpoint)
            self._outbound = outbound
            self._outbox = asyncio.Queue(maxsize=self.outbox_size)

    async def close(self) -> None:
        if self.clock is not None:
            self.clock.stop()
        self.state = BridgeState.CLOSED
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        for sock in (self._inbound, self._outbound):
            if sock is not None:
                sock.close(linger=0)
        self._inbound = None
        self._outbound = None
        self._outbox = None
        if self._owns_context and self._context is not None:
            self._context.term()
            self._context = None
        self.closed.set()
        log.info("Bridge closed")

    async def handle_frame(self, frames: Sequence[bytes]) -> ReplyToken:
        """Dispatch one inbound frame and return the reply it deserves.

        Never raises under the ``nack`` policy; under ``fatal`` a
        ``HandlerError`` propagates to the receive loop.
        """
        if len(frames) != 2:
            log.warning("Dropping malformed frame with %d part(s)", len(frames))
            return ReplyToken.ERROR
        try:
            topic = bytes(frames[0]).decode("utf-8")
            payload = bytes(frames[1]).decode("utf-8")
        except UnicodeDecodeError:
            log.warning("Dropping frame that is not valid UTF-8")
            return ReplyToken.ERROR

        log.info("Message: %s (%d chars)", topic, len(payload))
        try:
            result = await self.router.dispatch(topic, payload)
        except HandlerError:
            log.exception("Handler failed for topic %s", topic)
            if self.handler_error_policy == POLICY_FATAL:
                raise
            return ReplyToken.ERROR

        if isinstance(result, UnknownTopic):
            log.warning("Unknown topic %s", result.topic)
            return ReplyToken.NACK

        self._sink(result.target_state_id, result.value)
        return ReplyToken.ACK

    async def _inbound_loop(self) -> None:
        sock = self._inbound
        while True:
            try:
                frames = await sock.recv_multipart()
            except zmq.ZMQError:
                if self.state is BridgeState.CLOSED:
                    return
                raise
            fatal: HandlerError | None = None
            try:
                token = await self.handle_frame(frames)
            except HandlerError as exc:
                fatal = exc
                token = ReplyToken.ERROR
            except Exception:
                # Keep the loop alive; only this frame is lost.
                log.exception("Unexpected failure while handling frame")
                token = ReplyToken.ERROR

            if self.pattern == PATTERN_REQREP:
                await sock.send_string(token.value)

            if fatal is not None:
                log.error("Stopping bridge after handler error on topic %s", fatal.topic)
                self.fatal_error = fatal
                self._closing = asyncio.get_running_loop().create_task(self.close())
                return

    async def _outbound_loop(self) -> None:
        sock = self._outbound
        outbox = self._outbox
        while True:
            topic, payload = await outbox.get()
            # REQ sockets alternate strictly: one request, then its reply.
            await sock.send_multipart([topic.encode("utf-8"), payload.encode("utf-8")])
            reply = await sock.recv_multipart()
            log.info("Reply: %s", " ".join(part.decode("utf-8", "replace") for part in reply))

    def send_request(self, topic: str, payload: str) -> None:
        if self._outbox is None:
            raise RuntimeError("Outbound endpoint is not running.")
        if self._outbox.full():
            # Downstream is not answering: drop the oldest queued request.
            try:
                dropped_topic, _ = self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                pass
            else:
                log.warning("Outbound queue full; dropped pending %s request", dropped_topic)
        self._outbox.put_nowait((topic, payload))

    @property
    def outbox_depth(self) -> int:
        return self._outbox.qsize() if self._outbox is not None else 0

    def keyboard_lock(self, value: str) -> None:
        if value not in KEYBOARD_LOCK_VALUES:
            raise ValueError(f"Keyboard lock value must be one of {', '.join(KEYBOARD_LOCK_VALUES)}.")
        log.info("Change keyboard lock: %s", value)
        self.send_request(TOPIC_KEYBOARD_LOCK, value)

    @staticmethod
    def _log_task_exit(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("%s stopped", task.get_name(), exc_info=exc)
