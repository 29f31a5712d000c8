"""
GsCore content item kinds.
"""


class ContentType:
    TEXT = "text"
    IMAGE = "image"
    AT = "at"
    REPLY = "reply"
    RECORD = "record"
    FILE = "file"
    NODE = "node"
    MARKDOWN = "markdown"

    # Sent by GsCore but not representable on OneBot
    IMAGE_SIZE = "image_size"
    BUTTONS = "buttons"
    TEMPLATE_BUTTONS = "template_buttons"
    TEMPLATE_MARKDOWN = "template_markdown"
    GROUP = "group"

    LOG_PREFIX = "log_"


IGNORED_TYPES = {
    ContentType.IMAGE_SIZE,
    ContentType.BUTTONS,
    ContentType.TEMPLATE_BUTTONS,
    ContentType.TEMPLATE_MARKDOWN,
    ContentType.GROUP,
}


class SegmentType:
    """OneBot v11 message segment types."""
    TEXT = "text"
    IMAGE = "image"
    AT = "at"
    REPLY = "reply"
    FACE = "face"
    RECORD = "record"
    FILE = "file"
    NODE = "node"


class UserType:
    GROUP = "group"
    DIRECT = "direct"


class TargetType:
    GROUP = "group"
    DIRECT = "direct"
    CHANNEL = "channel"
    SUB_CHANNEL = "sub_channel"
