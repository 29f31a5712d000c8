"""
Platform action collaborator: the OneBot side the bridge talks back to.
"""

from typing import Any, Optional, Protocol


class PlatformActions(Protocol):
    async def call(self, action: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Invoke a OneBot action (``send_msg``, ``get_msg``, ...) and return its data."""
        ...

    async def close(self) -> None:
        ...


async def get_login_info(actions: PlatformActions) -> dict[str, Any]:
    return await actions.call("get_login_info", {}) or {}


async def get_msg(actions: PlatformActions, message_id: str) -> Any:
    return await actions.call("get_msg", {"message_id": message_id})


async def send_private_msg(actions: PlatformActions, user_id: str, message: list[dict[str, Any]]) -> Any:
    return await actions.call("send_msg", {"message_type": "private", "user_id": user_id, "message": message})


async def send_group_msg(actions: PlatformActions, group_id: str, message: list[dict[str, Any]]) -> Any:
    return await actions.call("send_msg", {"message_type": "group", "group_id": group_id, "message": message})
