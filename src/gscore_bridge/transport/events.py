"""
OneBot v11 forward WebSocket event stream.
"""

import json
import logging
from typing import Any, AsyncGenerator, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from gscore_bridge.transport.websocket import Connector, default_connector

logger = logging.getLogger(__name__)


def _with_access_token(url: str, token: str) -> str:
    if not token:
        return url
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if any(key == "access_token" for key, _ in query):
        return url
    query.append(("access_token", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


async def listen_events(
    url: str,
    token: str = "",
    connector: Optional[Connector] = None,
) -> AsyncGenerator[dict[str, Any], None]:
    """Yield OneBot events until the stream closes.

    Frames that are not JSON objects are logged and skipped. Connection
    errors propagate to the caller, which decides whether to retry.
    """
    transport = await (connector or default_connector)(_with_access_token(url, token))
    try:
        async for frame in transport:
            try:
                text = frame if isinstance(frame, str) else bytes(frame).decode("utf-8")
                event = json.loads(text)
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping malformed OneBot frame: {e}")
                continue
            if isinstance(event, dict):
                yield event
    finally:
        await transport.close()
