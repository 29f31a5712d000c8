"""
GsCore WebSocket connection manager.

Owns the single upstream socket, the disconnected/connecting/connected state
machine and the fixed-interval reconnect policy. Everything runs on one
asyncio loop; the only suspension points are the transport open, the
reconnect timer and the transport send.
"""

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Optional

import websockets

from gscore_bridge.config import BridgeConfig
from gscore_bridge.errors import FrameError
from gscore_bridge.models.envelope import OutboundEnvelope
from gscore_bridge.transport.envelope import build_ws_url, parse_outbound

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]
EnvelopeHandler = Callable[[OutboundEnvelope], Any]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


async def default_connector(url: str) -> Any:
    return await websockets.connect(url, max_size=None)


class ConnectionManager:
    def __init__(self, config: Optional[BridgeConfig] = None, connector: Optional[Connector] = None):
        self._config = config or BridgeConfig()
        self._connector = connector or default_connector
        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[Any] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None
        self._attempts = 0
        self._url = ""
        self._handlers: list[EnvelopeHandler] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def url(self) -> str:
        return self._url

    def get_status(self) -> ConnectionState:
        return self._state

    def add_handler(self, handler: EnvelopeHandler) -> Callable[[], None]:
        """Add an envelope handler. Returns a cleanup function."""
        self._handlers.append(handler)
        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_envelope(self, handler: Optional[EnvelopeHandler]) -> None:
        """Set a single envelope handler (replaces all)."""
        self._handlers.clear()
        if handler is not None:
            self._handlers.append(handler)

    # ==================== Lifecycle ====================

    def connect(self, config: Optional[BridgeConfig] = None) -> None:
        """Start connecting to GsCore. No-op while connecting or connected."""
        if config is not None:
            self._config = config
        if not self._config.gscore_enable:
            logger.info("[GScore] Upstream connection disabled, not connecting")
            return
        if self._state != ConnectionState.DISCONNECTED:
            return

        self._url = build_ws_url(self._config.gscore_url, self._config.gscore_token)
        self._state = ConnectionState.CONNECTING
        logger.info("[GScore] Connecting...")
        self._reader = asyncio.get_running_loop().create_task(self._run(self._url))

    async def _run(self, url: str) -> None:
        try:
            transport = await self._connector(url)
        except Exception as e:
            logger.error(f"[GScore] Failed to open connection: {e}")
            if self._reader is asyncio.current_task():
                self._on_close(None, str(e))
            return

        if self._reader is not asyncio.current_task():
            # disconnect() ran while the handshake was finishing
            await transport.close()
            return

        self._transport = transport
        self._on_open()
        try:
            async for frame in transport:
                self._on_message(frame)
        except Exception as e:
            self._on_error(e)
        self._on_close(getattr(transport, "close_code", None), getattr(transport, "close_reason", None) or "")

    def _on_open(self) -> None:
        logger.info("[GScore] Connected")
        self._state = ConnectionState.CONNECTED
        self._attempts = 0
        self._cancel_reconnect()

    def _on_message(self, frame: Any) -> None:
        try:
            envelope = parse_outbound(frame)
        except FrameError as e:
            logger.error(f"[GScore] Failed to parse frame: {e}")
            return

        logger.debug(f"[GScore] Received: target_type={envelope.target_type}, target_id={envelope.target_id}")
        for handler in list(self._handlers):
            try:
                result = handler(envelope)
            except Exception as e:
                logger.error(f"[GScore] Envelope handler failed: {e}")
                continue
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    def _on_error(self, error: Exception) -> None:
        # Recovery happens in the close handler that always follows
        logger.error(f"[GScore] Connection error: {error}")

    def _on_close(self, code: Optional[int], reason: str) -> None:
        logger.warning(f"[GScore] Connection closed: {code} {reason}")
        self._state = ConnectionState.DISCONNECTED
        self._transport = None
        self._reader = None
        self.schedule_reconnect()

    def schedule_reconnect(self) -> None:
        if not self._config.gscore_enable:
            return

        max_attempts = self._config.max_reconnect_attempts
        if max_attempts > 0 and self._attempts >= max_attempts:
            logger.error(
                f"[GScore] Reconnect limit reached ({max_attempts}), giving up. "
                "Check the configuration or reconnect manually."
            )
            return
        if self._reconnect_timer is not None:
            return

        interval = self._config.reconnect_interval / 1000
        limit = max_attempts if max_attempts > 0 else "∞"
        logger.info(f"[GScore] Reconnecting in {interval:g}s ({self._attempts + 1}/{limit})...")
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(interval, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        self._attempts += 1
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    async def disconnect(self) -> None:
        self._cancel_reconnect()
        reader, self._reader = self._reader, None
        transport, self._transport = self._transport, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                logger.warning(f"[GScore] Error while closing connection: {e}")
        self._attempts = 0
        self._state = ConnectionState.DISCONNECTED

    # ==================== Sending ====================

    def send(self, data: bytes) -> bool:
        """Queue a binary frame. Dropped unless connected."""
        if self._state != ConnectionState.CONNECTED or self._transport is None:
            logger.debug("[GScore] Not connected, dropping frame")
            return False
        transport = self._transport

        async def _do_send() -> None:
            try:
                await transport.send(data)
            except Exception as e:
                logger.error(f"[GScore] Send failed: {e}")

        task = asyncio.get_running_loop().create_task(_do_send())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True
