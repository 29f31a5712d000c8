"""
GScore bridge error types.
"""

from typing import Any, Optional


class BridgeError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(BridgeError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("config_error", message, details)


class ConnectionError(BridgeError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class FrameError(BridgeError):
    """A frame from GsCore that could not be decoded into an envelope."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("frame_error", message, details)


class PlatformActionError(BridgeError):
    def __init__(self, action: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("platform_action_error", message, details)
        self.action = action
