# /gaswatch/adapters/base.py
# Shared plumbing for long-lived websocket watchers.

import asyncio
import enum
from contextlib import suppress
from typing import Any, Callable

from web3 import AsyncWeb3, WebSocketProvider

from gaswatch.core.errors import ConnectionSuperseded, Fatal, FeedConnectionError
from gaswatch.core.logger import get_logger, CHANNEL_DROPPED, EVENTS_RECOVERED, FATAL_OUTCOMES

log = get_logger(__name__)

DEFAULT_CHANNEL_SIZE = 1000


class WatcherState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


def default_web3_factory(url: str) -> AsyncWeb3:
    # One socket open per call; endpoint failover and reconnect backoff do the retrying.
    return AsyncWeb3(WebSocketProvider(url, max_connection_retries=1))


class StreamWatcher:
    """
    Owns one outbound websocket session and the channel it writes to.

    Subclasses push observations with `_emit`, absorbed per-event failures with
    `_recover` and boundary-crossing failures with `_fatal`. The generation
    counter is bumped by every disconnect(); a connect that started under an older
    generation must never install its session.
    """
    def __init__(
        self,
        source: str,
        channel: asyncio.Queue | None = None,
        web3_factory: Callable[[str], Any] = default_web3_factory,
        connect_timeout_s: float = 10.0,
    ):
        self.source = source
        self.channel: asyncio.Queue = channel if channel is not None else asyncio.Queue(maxsize=DEFAULT_CHANNEL_SIZE)
        self.web3_factory = web3_factory
        self.connect_timeout_s = connect_timeout_s
        self.state = WatcherState.IDLE
        self.recovered_count = 0
        self.last_fatal: Exception | None = None
        self._generation = 0
        self._w3 = None
        self._subscription_id = None
        self._listener: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is WatcherState.CONNECTED

    @property
    def status(self) -> dict:
        return {"state": self.state.value, "connected": self.is_connected, "recovered": self.recovered_count}

    def _emit(self, item) -> None:
        """Puts `item` on the channel; when nobody keeps up, the oldest item makes room."""
        try:
            self.channel.put_nowait(item)
            return
        except asyncio.QueueFull:
            pass
        dropped = self.channel.get_nowait()
        self.channel.task_done()
        CHANNEL_DROPPED.labels(self.source).inc()
        log.warning("WATCHER_CHANNEL_FULL", source=self.source, dropped=type(dropped).__name__, maxsize=self.channel.maxsize)
        self.channel.put_nowait(item)

    def _recover(self, error: Exception, **context) -> None:
        self.recovered_count += 1
        EVENTS_RECOVERED.labels(self.source).inc()
        log.warning("WATCHER_EVENT_SKIPPED", source=self.source, error=str(error), **context)

    def _fatal(self, error: Exception) -> None:
        self.last_fatal = error
        FATAL_OUTCOMES.labels(self.source).inc()
        log.error("WATCHER_FATAL", source=self.source, error=str(error))
        self._emit(Fatal(self.source, error))

    def _check_live(self, generation: int) -> None:
        if generation != self._generation:
            raise ConnectionSuperseded(f"{self.source}: connect superseded by disconnect")

    async def _timed(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.connect_timeout_s)
        except asyncio.TimeoutError as e:
            raise FeedConnectionError(f"{self.source}: timed out after {self.connect_timeout_s}s") from e

    async def _close_session(self, w3) -> None:
        try:
            await w3.provider.disconnect()
        except Exception as e:
            log.warning("WATCHER_SESSION_CLOSE_FAILED", source=self.source, error=str(e))

    def _install(self, w3, subscription_id, listener_coro) -> None:
        self._w3 = w3
        self._subscription_id = subscription_id
        self._listener = asyncio.create_task(listener_coro)

    async def _teardown_session(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None and listener is not asyncio.current_task() and not listener.done():
            listener.cancel()
            with suppress(asyncio.CancelledError):
                await listener

        w3, self._w3 = self._w3, None
        subscription_id, self._subscription_id = self._subscription_id, None
        if w3 is None:
            return
        if subscription_id is not None:
            try:
                await self._timed(w3.eth.unsubscribe(subscription_id))
            except Exception as e:
                log.warning("WATCHER_UNSUBSCRIBE_FAILED", source=self.source, error=str(e))
        await self._close_session(w3)
