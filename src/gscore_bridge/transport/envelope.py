"""
Envelope construction and parsing, plus the GsCore WebSocket URL.
"""

import json
from typing import Any, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError

from gscore_bridge.errors import FrameError
from gscore_bridge.models.content import UserType
from gscore_bridge.models.envelope import ContentItem, InboundEnvelope, OutboundEnvelope

DEFAULT_GSCORE_URL = "ws://localhost:8765"
BRIDGE_BOT_ID = "napcat"  # routing id in the /ws/<bot_id> path
ENVELOPE_BOT_ID = "onebot"

PM_OWNER = 2
PM_ADMIN = 3
PM_USER = 6


def build_ws_url(url: str, token: str = "", bot_id: str = BRIDGE_BOT_ID) -> str:
    """Derive the GsCore WebSocket URL from the configured base URL."""
    url = url or DEFAULT_GSCORE_URL
    if url.endswith("/"):
        url = url[:-1]
    if "/ws/" not in url:
        url = f"{url}/ws/{bot_id}"

    if token:
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        if not any(key == "token" for key, _ in query):
            query.append(("token", token))
            url = urlunsplit(parts._replace(query=urlencode(query)))
    return url


def permission_level(sender: Optional[dict[str, Any]]) -> int:
    role = (sender or {}).get("role")
    if role == "owner":
        return PM_OWNER
    if role == "admin":
        return PM_ADMIN
    return PM_USER


def build_inbound(
    event: dict[str, Any],
    content: list[ContentItem],
    self_id: Optional[str] = None,
) -> InboundEnvelope:
    """Build a MessageReceive envelope for a OneBot message event."""
    user_id = str(event.get("user_id"))
    sender = event.get("sender")
    if isinstance(sender, dict) and sender:
        sender = {
            **sender,
            "user_id": str(sender["user_id"]) if sender.get("user_id") else user_id,
            "nickname": sender.get("nickname") or sender.get("card") or "",
        }
    else:
        sender = {}

    group_id = event.get("group_id")
    return InboundEnvelope(
        bot_id=ENVELOPE_BOT_ID,
        bot_self_id=str(self_id or event.get("self_id") or ""),
        msg_id=str(event.get("message_id") or ""),
        user_type=UserType.GROUP if event.get("message_type") == "group" else UserType.DIRECT,
        group_id=str(group_id) if group_id else None,
        user_id=user_id,
        sender=sender,
        user_pm=permission_level(sender),
        content=content,
    )


def encode_frame(envelope: InboundEnvelope) -> bytes:
    """GsCore reads frames with receive_bytes(), so envelopes go out as binary."""
    return json.dumps(envelope.model_dump(), ensure_ascii=False).encode("utf-8")


def parse_outbound(raw: Union[str, bytes, bytearray]) -> OutboundEnvelope:
    """Parse a MessageSend frame. Raises FrameError if it is not one."""
    try:
        text = raw if isinstance(raw, str) else bytes(raw).decode("utf-8")
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FrameError(f"Malformed frame: {e}")
    if not isinstance(payload, dict):
        raise FrameError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return OutboundEnvelope.model_validate(payload)
    except ValidationError as e:
        raise FrameError(f"Invalid MessageSend envelope: {e.error_count()} error(s)", {"errors": e.errors()})
