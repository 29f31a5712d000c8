"""
Content codec: OneBot message segments <-> GsCore content items.

Pure functions, no I/O. A segment or item that cannot be translated is
dropped on its own; the rest of the sequence is still translated.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from gscore_bridge.models.content import IGNORED_TYPES, ContentType, SegmentType
from gscore_bridge.models.envelope import ContentItem

logger = logging.getLogger(__name__)

LINK_PREFIX = "link://"

# Sender shown on forwarded-message nodes
NODE_USER_ID = "3889929917"
NODE_NICKNAME = "🦊小助手"

LOG_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "success": logging.INFO,
}


def _segment_data(seg: dict[str, Any]) -> dict[str, Any]:
    data = seg.get("data")
    return data if isinstance(data, dict) else {}


def _encode_segment(seg: dict[str, Any]) -> Optional[ContentItem]:
    kind = seg.get("type")
    data = _segment_data(seg)

    if kind == SegmentType.TEXT:
        return ContentItem(type=ContentType.TEXT, data=data.get("text") or "")
    if kind == SegmentType.IMAGE:
        return ContentItem(type=ContentType.IMAGE, data=data.get("url") or data.get("file") or "")
    if kind == SegmentType.AT:
        return ContentItem(type=ContentType.AT, data=str(data.get("qq") or ""))
    if kind == SegmentType.REPLY:
        return ContentItem(type=ContentType.REPLY, data=str(data.get("id") or ""))
    if kind == SegmentType.FACE:
        return ContentItem(type=ContentType.TEXT, data=f"[表情:{data.get('id') or ''}]")
    if kind == SegmentType.RECORD:
        return ContentItem(type=ContentType.RECORD, data=data.get("url") or data.get("file") or "")
    if kind == SegmentType.FILE:
        return ContentItem(type=ContentType.FILE, data=f"{data.get('name') or 'file'}|{data.get('url') or ''}")
    if data.get("text"):
        return ContentItem(type=ContentType.TEXT, data=data["text"])
    return None


def encode_segments(message: Any, raw_message: str = "") -> list[ContentItem]:
    """Translate a OneBot segment list into GsCore content.

    Falls back to ``raw_message`` as a single text item when the event has
    no structured segments.
    """
    if not isinstance(message, list) or not message:
        return [ContentItem(type=ContentType.TEXT, data=raw_message)] if raw_message else []

    content: list[ContentItem] = []
    for seg in message:
        try:
            item = _encode_segment(seg)
        except Exception as e:
            logger.warning(f"[GScore] Dropping untranslatable segment {seg!r}: {e}")
            continue
        if item is not None:
            content.append(item)
    return content


def encode_message(event: dict[str, Any]) -> list[ContentItem]:
    return encode_segments(event.get("message"), event.get("raw_message") or "")


def find_reply_id(message: Any) -> Optional[str]:
    """Id of the first reply segment, if it carries one."""
    if not isinstance(message, list):
        return None
    for seg in message:
        if isinstance(seg, dict) and seg.get("type") == SegmentType.REPLY:
            reply_id = _segment_data(seg).get("id")
            return str(reply_id) if reply_id else None
    return None


def extract_quoted_images(quoted: Any) -> list[ContentItem]:
    """Image items from a quoted message returned by ``get_msg``.

    Only images are lifted out of the quote; text and other segments are
    left behind.
    """
    if not isinstance(quoted, dict) or not isinstance(quoted.get("message"), list):
        return []

    images: list[ContentItem] = []
    for seg in quoted["message"]:
        if not isinstance(seg, dict) or seg.get("type") != SegmentType.IMAGE:
            continue
        data = _segment_data(seg)
        url = data.get("url") or data.get("file")
        if isinstance(url, str):
            url = url.strip()
            if url:
                images.append(ContentItem(type=ContentType.IMAGE, data=url))
    return images


def _as_item(raw: Any) -> Optional[ContentItem]:
    if isinstance(raw, ContentItem):
        return raw
    try:
        return ContentItem.model_validate(raw)
    except ValidationError:
        return None


def _image_file(value: str) -> str:
    if value.startswith(LINK_PREFIX):
        return value[len(LINK_PREFIX):]
    # base64://, http(s) and local paths are all accepted by OneBot as-is
    return value


def _decode_file(value: str) -> Optional[dict[str, Any]]:
    name, sep, body = value.partition("|")
    if not sep or not name:
        return None
    if body.startswith(LINK_PREFIX):
        text = f"[文件: {name}] {body[len(LINK_PREFIX):]}"
    else:
        text = f"[文件: {name}]"
    return {"type": SegmentType.TEXT, "data": {"text": text}}


def _decode_item(item: ContentItem, node_user_id: str, node_nickname: str) -> list[dict[str, Any]]:
    kind, data = item.type, item.data

    if kind == ContentType.TEXT:
        return [{"type": SegmentType.TEXT, "data": {"text": str(data)}}]
    if kind == ContentType.IMAGE:
        return [{"type": SegmentType.IMAGE, "data": {"file": _image_file(str(data))}}]
    if kind == ContentType.AT:
        return [{"type": SegmentType.AT, "data": {"qq": str(data)}}]
    if kind == ContentType.REPLY:
        return [{"type": SegmentType.REPLY, "data": {"id": str(data)}}]
    if kind == ContentType.RECORD:
        return [{"type": SegmentType.RECORD, "data": {"file": str(data)}}]
    if kind == ContentType.FILE:
        seg = _decode_file(str(data))
        return [seg] if seg else []
    if kind == ContentType.MARKDOWN:
        return [{"type": SegmentType.TEXT, "data": {"text": str(data)}}]
    if kind == ContentType.NODE:
        if not isinstance(data, list):
            return []
        nodes = []
        for sub in data:
            segments = decode_content([sub], node_user_id, node_nickname)
            if segments:
                nodes.append({
                    "type": SegmentType.NODE,
                    "data": {"user_id": node_user_id, "nickname": node_nickname, "content": segments},
                })
        return nodes
    if kind in IGNORED_TYPES:
        return []
    if isinstance(data, str) and data:
        return [{"type": SegmentType.TEXT, "data": {"text": data}}]
    return []


def decode_content(
    items: Any,
    node_user_id: str = NODE_USER_ID,
    node_nickname: str = NODE_NICKNAME,
) -> list[dict[str, Any]]:
    """Translate GsCore content into OneBot segments ready for ``send_msg``."""
    result: list[dict[str, Any]] = []
    for raw in items or []:
        item = _as_item(raw)
        if item is None or not item.type or item.data is None:
            continue
        try:
            result.extend(_decode_item(item, node_user_id, node_nickname))
        except Exception as e:
            logger.warning(f"[GScore] Dropping untranslatable item type={item.type!r}: {e}")
    return result


def log_directive(items: Any) -> Optional[tuple[int, str]]:
    """Return ``(level, text)`` when the content is a ``log_*`` message.

    GsCore uses these to report diagnostics; they are logged and never
    delivered to a chat.
    """
    if not items:
        return None
    first = _as_item(items[0])
    if first is None or not first.type or not first.type.startswith(ContentType.LOG_PREFIX):
        return None

    level_name = first.type[len(ContentType.LOG_PREFIX):].lower()
    text = "" if first.data is None else str(first.data)
    if level_name == "success":
        return LOG_LEVELS[level_name], f"✅ {text}"
    if level_name in LOG_LEVELS:
        return LOG_LEVELS[level_name], text
    return logging.DEBUG, f"[{level_name}] {text}"
