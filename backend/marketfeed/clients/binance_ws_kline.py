"""Binance WebSocket client for real-time kline data using picows.

Each (symbol, timeframe) gets its own socket and its own reconnect loop.
Consumers get a ``KlineSubscription``: an async iterator of ``KlineUpdate``
plus ``cancel()``. Connection status is reported to ``on_status`` listeners.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import orjson
from picows import WSCloseCode, WSFrame, WSListener, WSMsgType, WSTransport, ws_connect

from signals_core.models.kline import Kline

from marketfeed.clients.binance_rest import BinanceRestClient
from marketfeed.clients.errors import ResponseValidationError
from marketfeed.clients.validators import parse_binance_ws_kline
from marketfeed.config import BinanceSettings, StreamSettings

logger = logging.getLogger(__name__)


class StreamStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class KlineUpdate:
    kline: Kline
    is_final: bool


@dataclass(slots=True, frozen=True)
class StreamStatusEvent:
    stream: str
    status: StreamStatus
    attempt: int = 0
    message: str = ""


StatusCallback = Callable[[StreamStatusEvent], None]

# Buffered updates per subscription before the oldest is dropped
DEFAULT_MAX_PENDING = 1000


def stream_name(symbol: str, timeframe: str) -> str:
    """Binance stream name, e.g. ``btcusdt@kline_5m``."""
    interval = BinanceRestClient.TIMEFRAME_MAP.get(timeframe, timeframe)
    return f"{symbol.lower()}@kline_{interval}"


class KlineSubscription:
    """Updates for one stream, consumed with ``async for``.

    Iteration ends when the subscription is cancelled, the client shuts
    down, or the stream gives up reconnecting. At most ``max_pending``
    updates are buffered; when a consumer falls behind the oldest update
    is dropped.
    """

    def __init__(
        self,
        stream: str,
        client: BinanceKlineStream,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        self.stream = stream
        self.max_pending = max_pending
        self.dropped = 0
        self._client = client
        self._queue: asyncio.Queue[KlineUpdate | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def push(self, update: KlineUpdate) -> None:
        if self._closed:
            return
        if self._queue.qsize() >= self.max_pending:
            self._queue.get_nowait()
            if self.dropped == 0:
                logger.warning(
                    f"Subscription {self.stream} is not keeping up, dropping oldest updates"
                )
            self.dropped += 1
        self._queue.put_nowait(update)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def cancel(self) -> None:
        """Stop the stream and end iteration."""
        await self._client.close_stream(self.stream)

    def __aiter__(self) -> KlineSubscription:
        return self

    async def __anext__(self) -> KlineUpdate:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


@dataclass
class _StreamState:
    stream: str
    symbol: str
    timeframe: str
    subscription: KlineSubscription
    active: bool = True
    reconnect_attempts: int = 0
    transport: WSTransport | None = None
    task: asyncio.Task | None = None
    disconnected: asyncio.Event = field(default_factory=asyncio.Event)


class KlineStreamListener(WSListener):
    """picows listener bound to one stream."""

    def __init__(self, client: BinanceKlineStream, state: _StreamState):
        self._client = client
        self._state = state

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        self._state.transport = transport
        self._client.handle_open(self._state)

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        self._state.transport = None
        self._client.handle_close(self._state)

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self._client.handle_message(self._state, frame.get_payload_as_utf8_text())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())


class BinanceKlineStream:
    """Binance spot kline streams, one socket per subscription."""

    def __init__(
        self,
        ws_url: str = "wss://stream.binance.com:9443/ws",
        reconnect_delay: float = 5.0,
        max_reconnect_attempts: int = 5,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        self.ws_url = ws_url.rstrip("/")
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.max_pending = max_pending
        self._streams: dict[str, _StreamState] = {}
        self._latest: dict[str, Kline] = {}
        self._status_callbacks: list[StatusCallback] = []
        self._shutting_down = False

    @classmethod
    def from_settings(
        cls, binance: BinanceSettings, stream: StreamSettings
    ) -> BinanceKlineStream:
        return cls(
            ws_url=binance.ws_url,
            reconnect_delay=stream.reconnect_delay_ms / 1000.0,
            max_reconnect_attempts=stream.max_reconnect_attempts,
            max_pending=stream.max_pending_updates,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def subscribe(self, symbol: str, timeframe: str) -> KlineSubscription:
        """
        Subscribe to kline updates for a symbol.

        Subscribing twice to the same stream returns the existing
        subscription without opening another socket.

        Raises:
            RuntimeError: If the client is shutting down.
        """
        if self._shutting_down:
            raise RuntimeError("Kline stream client is shut down")

        name = stream_name(symbol, timeframe)
        existing = self._streams.get(name)
        if existing is not None:
            return existing.subscription

        state = _StreamState(
            stream=name,
            symbol=symbol,
            timeframe=timeframe,
            subscription=KlineSubscription(name, self, self.max_pending),
        )
        self._streams[name] = state
        state.task = asyncio.create_task(self._run_stream(state))
        logger.info(f"Subscribed to kline stream {name}")
        return state.subscription

    async def unsubscribe(self, symbol: str, timeframe: str) -> None:
        await self.close_stream(stream_name(symbol, timeframe))

    async def close_stream(self, name: str) -> None:
        state = self._streams.pop(name, None)
        if state is None:
            return

        state.active = False
        if state.transport is not None:
            state.transport.send_close(WSCloseCode.OK)
            state.transport.disconnect()
        state.disconnected.set()
        state.subscription.close()

        if state.task is not None and state.task is not asyncio.current_task():
            state.task.cancel()
            try:
                await state.task
            except asyncio.CancelledError:
                pass
        logger.info(f"Closed kline stream {name}")

    async def shutdown(self) -> None:
        """Close every stream and refuse further reconnects/subscriptions."""
        self._shutting_down = True
        for name in list(self._streams):
            await self.close_stream(name)

    def on_status(self, callback: StatusCallback) -> None:
        """Register a callback for connection status events."""
        if callback not in self._status_callbacks:
            self._status_callbacks.append(callback)

    def off_status(self, callback: StatusCallback) -> None:
        if callback in self._status_callbacks:
            self._status_callbacks.remove(callback)

    def get_latest_kline(self, symbol: str, timeframe: str) -> Kline | None:
        return self._latest.get(stream_name(symbol, timeframe))

    @property
    def active_streams(self) -> list[str]:
        return list(self._streams)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    # ------------------------------------------------------------------
    # Listener hooks
    # ------------------------------------------------------------------

    def handle_open(self, state: _StreamState) -> None:
        state.reconnect_attempts = 0
        logger.info(f"Kline stream {state.stream} connected")
        self._emit(StreamStatusEvent(state.stream, StreamStatus.CONNECTED))

    def handle_close(self, state: _StreamState) -> None:
        state.disconnected.set()
        if self._shutting_down or not state.active:
            return
        logger.warning(f"Kline stream {state.stream} disconnected")
        self._emit(StreamStatusEvent(state.stream, StreamStatus.DISCONNECTED))

    def handle_message(self, state: _StreamState, payload: str | bytes) -> None:
        """Validate, transform and publish one inbound frame."""
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            logger.error(f"Failed to parse kline message on {state.stream}: {e}")
            return

        # Ignore subscription confirmations
        if isinstance(data, dict) and ("result" in data or "id" in data):
            return

        try:
            kline = parse_binance_ws_kline(data, state.timeframe)
        except ResponseValidationError as e:
            logger.warning(f"Rejected kline message on {state.stream}: {e}")
            return

        self._latest[state.stream] = kline
        state.subscription.push(KlineUpdate(kline=kline, is_final=kline.is_closed))

    # ------------------------------------------------------------------
    # Connection loop
    # ------------------------------------------------------------------

    def _emit(self, event: StreamStatusEvent) -> None:
        for callback in self._status_callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Stream status callback error: {e}")

    async def _connect(self, state: _StreamState) -> None:
        """Open the socket and wait until it is disconnected."""
        state.disconnected.clear()
        url = f"{self.ws_url}/{state.stream}"
        logger.info(f"Connecting to {url}")
        await ws_connect(
            lambda: KlineStreamListener(self, state),
            url,
            enable_auto_ping=True,
            auto_ping_idle_timeout=30,
            auto_ping_reply_timeout=10,
        )
        await state.disconnected.wait()

    async def _run_stream(self, state: _StreamState) -> None:
        """Connect, then reconnect with exponential backoff until told to stop."""
        while state.active and not self._shutting_down:
            try:
                await self._connect(state)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Kline stream {state.stream} connection error: {e}")

            if not state.active or self._shutting_down:
                break

            if state.reconnect_attempts >= self.max_reconnect_attempts:
                message = (
                    f"Giving up on {state.stream} after "
                    f"{state.reconnect_attempts} reconnect attempts"
                )
                logger.error(message)
                self._emit(StreamStatusEvent(
                    state.stream,
                    StreamStatus.ERROR,
                    attempt=state.reconnect_attempts,
                    message=message,
                ))
                state.active = False
                state.subscription.close()
                self._streams.pop(state.stream, None)
                break

            delay = self.reconnect_delay * 2 ** state.reconnect_attempts
            state.reconnect_attempts += 1
            logger.info(
                f"Reconnecting {state.stream} in {delay:.1f}s "
                f"(attempt {state.reconnect_attempts}/{self.max_reconnect_attempts})"
            )
            self._emit(StreamStatusEvent(
                state.stream, StreamStatus.RECONNECTING, attempt=state.reconnect_attempts
            ))
            await asyncio.sleep(delay)
