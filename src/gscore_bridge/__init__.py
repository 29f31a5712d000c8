"""
gscore-bridge — OneBot v11 <-> GsCore (早柚核心) adapter.

Forwards chat messages from a OneBot implementation to GsCore over a
WebSocket and delivers GsCore's replies back through OneBot actions.
"""

from gscore_bridge.client import GScoreBridge
from gscore_bridge.bridge import InboundBridge, OutboundBridge
from gscore_bridge.config import BridgeConfig, load_config, save_config
from gscore_bridge.errors import BridgeError, ConfigError, ConnectionError, FrameError, PlatformActionError
from gscore_bridge.models.content import ContentType
from gscore_bridge.models.envelope import ContentItem, InboundEnvelope, OutboundEnvelope
from gscore_bridge.transport.websocket import ConnectionManager, ConnectionState

__version__ = "0.1.0"
__all__ = [
    "GScoreBridge",
    "InboundBridge",
    "OutboundBridge",
    "BridgeConfig",
    "load_config",
    "save_config",
    "BridgeError",
    "ConfigError",
    "ConnectionError",
    "FrameError",
    "PlatformActionError",
    "ContentType",
    "ContentItem",
    "InboundEnvelope",
    "OutboundEnvelope",
    "ConnectionManager",
    "ConnectionState",
]
