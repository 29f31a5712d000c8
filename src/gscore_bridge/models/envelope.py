"""
GsCore envelopes: MessageReceive (bridge -> GsCore) and MessageSend (GsCore -> bridge).
"""

from typing import Any, Optional
from pydantic import BaseModel, ValidationError, field_validator


def _as_str(value: Any) -> Any:
    # OneBot hands out numeric ids; GsCore expects strings everywhere
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class ContentItem(BaseModel):
    type: Optional[str] = None
    data: Optional[Any] = None


class InboundEnvelope(BaseModel):
    """MessageReceive"""
    bot_id: str
    bot_self_id: str
    msg_id: str
    user_type: str  # "group" | "direct"
    group_id: Optional[str] = None
    user_id: str
    sender: dict[str, Any] = {}
    user_pm: int = 6
    content: list[ContentItem] = []

    @field_validator("bot_id", "bot_self_id", "msg_id", "group_id", "user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return _as_str(value)


class OutboundEnvelope(BaseModel):
    """MessageSend"""
    bot_id: Optional[str] = None
    bot_self_id: Optional[str] = None
    msg_id: Optional[str] = None
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    content: Optional[list[ContentItem]] = None

    @field_validator("bot_id", "bot_self_id", "msg_id", "target_type", "target_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return _as_str(value)

    @field_validator("content", mode="before")
    @classmethod
    def _drop_bad_items(cls, value: Any) -> Any:
        # One malformed item must not cost the rest of the message
        if not isinstance(value, list):
            return value
        items = []
        for raw in value:
            try:
                items.append(ContentItem.model_validate(raw))
            except ValidationError:
                continue
        return items
