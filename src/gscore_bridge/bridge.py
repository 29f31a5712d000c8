"""
Message bridges between OneBot and GsCore.

InboundBridge: OneBot message event -> MessageReceive frame on the socket.
OutboundBridge: MessageSend envelope from GsCore -> OneBot send_msg.

Both are handed the connection manager and the platform action collaborator
explicitly; neither holds any per-message state.
"""

import logging
from typing import Any, Optional

from gscore_bridge import actions as platform
from gscore_bridge.actions import PlatformActions
from gscore_bridge.codec import (
    NODE_NICKNAME,
    NODE_USER_ID,
    decode_content,
    encode_message,
    extract_quoted_images,
    find_reply_id,
    log_directive,
)
from gscore_bridge.config import BridgeConfig
from gscore_bridge.models.content import TargetType, UserType
from gscore_bridge.models.envelope import ContentItem, OutboundEnvelope
from gscore_bridge.transport.envelope import build_inbound, encode_frame
from gscore_bridge.transport.websocket import ConnectionManager, ConnectionState

logger = logging.getLogger(__name__)
remote_logger = logging.getLogger("gscore_bridge.remote")

FORWARDED_MESSAGE_TYPES = {"group", "private"}


class InboundBridge:
    def __init__(
        self,
        connection: ConnectionManager,
        actions: PlatformActions,
        config: Optional[BridgeConfig] = None,
        self_id: str = "",
    ):
        self._connection = connection
        self._actions = actions
        self.config = config or BridgeConfig()
        self.self_id = self_id

    def should_forward(self, event: dict[str, Any]) -> bool:
        if event.get("post_type", "message") != "message":
            return False
        message_type = event.get("message_type")
        if message_type not in FORWARDED_MESSAGE_TYPES:
            return False
        if self.config.is_blacklisted(event.get("user_id")):
            logger.debug(f"User {event.get('user_id')} is blacklisted, not forwarding")
            return False
        if message_type == "group" and not self.config.is_group_enabled(event.get("group_id")):
            return False
        return self.config.gscore_enable

    async def _quoted_images(self, event: dict[str, Any]) -> list[ContentItem]:
        reply_id = find_reply_id(event.get("message"))
        if not reply_id:
            return []
        try:
            quoted = await platform.get_msg(self._actions, reply_id)
        except Exception as e:
            logger.warning(f"[GScore] Failed to fetch quoted message {reply_id}: {e}")
            return []
        images = extract_quoted_images(quoted)
        if images:
            logger.debug(f"[GScore] Extracted {len(images)} image(s) from quoted message {reply_id}")
        return images

    async def handle(self, event: dict[str, Any]) -> bool:
        """Forward one OneBot message event. Returns True if a frame was queued."""
        try:
            if not self.should_forward(event):
                return False
            if self._connection.get_status() != ConnectionState.CONNECTED:
                return False

            content = encode_message(event)
            content.extend(await self._quoted_images(event))

            envelope = build_inbound(event, content, self.self_id)
            sent = self._connection.send(encode_frame(envelope))
            if sent:
                where = "group" if envelope.user_type == UserType.GROUP else "private"
                logger.debug(f"[GScore] Forwarded {where} message from {envelope.group_id or envelope.user_id}")
            return sent
        except Exception as e:
            logger.error(f"[GScore] Failed to forward message: {e}")
            return False


class OutboundBridge:
    def __init__(
        self,
        actions: PlatformActions,
        node_user_id: str = NODE_USER_ID,
        node_nickname: str = NODE_NICKNAME,
    ):
        self._actions = actions
        self._node_user_id = node_user_id
        self._node_nickname = node_nickname

    async def handle(self, envelope: OutboundEnvelope) -> bool:
        """Deliver one MessageSend envelope. Returns True if a send succeeded."""
        content = envelope.content
        if not content:
            logger.debug("[GScore] Empty message, ignoring")
            return False

        directive = log_directive(content)
        if directive is not None:
            level, text = directive
            remote_logger.log(level, f"[GScore Log] {text}")
            return False

        target_id = envelope.target_id
        if not target_id:
            logger.warning("[GScore] Message has no target_id, cannot deliver")
            return False

        try:
            message = decode_content(content, self._node_user_id, self._node_nickname)
            if not message:
                logger.debug("[GScore] Nothing left after translation, ignoring")
                return False

            if envelope.target_type == TargetType.DIRECT:
                await platform.send_private_msg(self._actions, target_id, message)
                logger.debug(f"[GScore] Sent private message to {target_id}")
            else:
                # group, channel and sub_channel all go to the group
                await platform.send_group_msg(self._actions, target_id, message)
                logger.debug(f"[GScore] Sent group message to {target_id}")
            return True
        except Exception as e:
            logger.error(f"[GScore] Failed to deliver message to {target_id}: {e}")
            return False
