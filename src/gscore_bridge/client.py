"""
GScoreBridge — wires the connection manager, both bridges and the OneBot
action client together.
"""

import logging
import time
from typing import Any, Optional

from gscore_bridge import actions as platform
from gscore_bridge.actions import PlatformActions
from gscore_bridge.bridge import InboundBridge, OutboundBridge
from gscore_bridge.config import BridgeConfig
from gscore_bridge.transport.http import OneBotHttpActions
from gscore_bridge.transport.websocket import ConnectionManager, ConnectionState, Connector

logger = logging.getLogger(__name__)


def format_uptime(seconds: float) -> str:
    s = int(seconds)
    m, h, d = s // 60, s // 3600, s // 86400
    if d > 0:
        return f"{d}天{h % 24}小时"
    if h > 0:
        return f"{h}小时{m % 60}分钟"
    if m > 0:
        return f"{m}分钟{s % 60}秒"
    return f"{s}秒"


class GScoreBridge:
    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        actions: Optional[PlatformActions] = None,
        connector: Optional[Connector] = None,
    ):
        self._config = config or BridgeConfig()
        self.actions = actions or OneBotHttpActions(self._config.onebot_http_url, self._config.onebot_token)
        self.connection = ConnectionManager(self._config, connector=connector)
        self.inbound = InboundBridge(self.connection, self.actions, self._config)
        self.outbound = OutboundBridge(self.actions)
        self.connection.on_envelope(self.outbound.handle)
        self._start_time = time.monotonic()

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self.connection.get_status() == ConnectionState.CONNECTED

    async def fetch_self_id(self) -> str:
        try:
            info = await platform.get_login_info(self.actions)
        except Exception as e:
            logger.warning(f"Failed to fetch bot account id: {e}")
            return self.inbound.self_id
        if isinstance(info, dict) and info.get("user_id"):
            self.inbound.self_id = str(info["user_id"])
            logger.debug(f"Bot account: {self.inbound.self_id}")
        return self.inbound.self_id

    async def start(self) -> None:
        self._start_time = time.monotonic()
        await self.fetch_self_id()
        if self._config.gscore_enable:
            self.connection.connect(self._config)

    async def handle_event(self, event: dict[str, Any]) -> bool:
        if not self._config.enabled:
            return False
        return await self.inbound.handle(event)

    async def update_config(self, config: BridgeConfig) -> None:
        """Swap in a new config; reconnect only if connection settings changed."""
        old = self._config
        self._config = config
        self.inbound.config = config
        if not old.connection_changed(config):
            return

        logger.info("GScore connection settings changed, reconnecting...")
        await self.connection.disconnect()
        if config.gscore_enable:
            self.connection.connect(config)

    async def stop(self) -> None:
        await self.connection.disconnect()
        await self.actions.close()

    def uptime(self) -> float:
        return time.monotonic() - self._start_time

    def status(self) -> dict[str, Any]:
        return {
            "connection": self.connection.get_status().value,
            "uptime": format_uptime(self.uptime()),
            "blacklist": len(self._config.blacklist),
        }
