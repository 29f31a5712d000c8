"""
OneBot v11 HTTP action client.
"""

from typing import Any, Optional

import httpx

from gscore_bridge.errors import PlatformActionError

DEFAULT_ONEBOT_URL = "http://localhost:3000"


class OneBotHttpActions:
    def __init__(self, base_url: str = DEFAULT_ONEBOT_URL, token: Optional[str] = None, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "gscore-bridge/0.1.0", "Accept": "application/json"},
            timeout=timeout,
        )

    def set_token(self, token: str) -> None:
        self._token = token

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(action: str, json_data: Any) -> Any:
        """Unwrap the OneBot response: { "status": "ok", "retcode": 0, "data": <actual_data> }"""
        if isinstance(json_data, dict) and "status" in json_data:
            if json_data["status"] == "failed":
                message = json_data.get("message") or json_data.get("wording") or "action failed"
                raise PlatformActionError(action, f"{action} failed: {message}", {"retcode": json_data.get("retcode")})
            return json_data.get("data")
        return json_data

    async def call(self, action: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.post(f"/{action}", json=params or {}, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise PlatformActionError(action, f"{action} request failed: {e}")
        if resp.status_code >= 400:
            raise PlatformActionError(action, f"HTTP {resp.status_code}: {resp.text[:200]}")
        return self._unwrap(action, resp.json())

    async def close(self) -> None:
        await self._client.aclose()
