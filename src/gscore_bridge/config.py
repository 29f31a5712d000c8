"""
Bridge configuration, a pydantic snapshot loaded from a JSON file.

Connection settings are read from the snapshot handed to the connection
manager; a changed snapshot only causes a reconnect when one of
CONNECTION_KEYS differs.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from gscore_bridge.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".gscore-bridge" / "config.json"
CONFIG_ENV_VAR = "GSCORE_BRIDGE_CONFIG"

CONNECTION_KEYS = (
    "gscore_url",
    "gscore_token",
    "gscore_enable",
    "reconnect_interval",
    "max_reconnect_attempts",
)


class GroupConfig(BaseModel):
    enabled: Optional[bool] = None


class BridgeConfig(BaseModel):
    enabled: bool = True
    gscore_url: str = "ws://localhost:8765"
    gscore_token: str = ""
    gscore_enable: bool = True
    reconnect_interval: int = Field(default=5000, ge=0)  # ms
    max_reconnect_attempts: int = Field(default=10, ge=0)  # 0 = unlimited
    blacklist: list[str] = []
    group_configs: dict[str, GroupConfig] = {}
    onebot_http_url: str = "http://localhost:3000"
    onebot_ws_url: str = "ws://localhost:3001"
    onebot_token: str = ""

    def is_group_enabled(self, group_id: Union[str, int]) -> bool:
        """Groups are enabled unless explicitly switched off."""
        group = self.group_configs.get(str(group_id))
        return group is None or group.enabled is not False

    def is_blacklisted(self, user_id: Union[str, int]) -> bool:
        return str(user_id) in self.blacklist

    def add_to_blacklist(self, user_id: Union[str, int]) -> bool:
        user_id = str(user_id)
        if user_id in self.blacklist:
            return False
        self.blacklist.append(user_id)
        return True

    def remove_from_blacklist(self, user_id: Union[str, int]) -> bool:
        user_id = str(user_id)
        if user_id not in self.blacklist:
            return False
        self.blacklist.remove(user_id)
        return True

    def set_group_enabled(self, group_id: Union[str, int], enabled: bool) -> None:
        group = self.group_configs.setdefault(str(group_id), GroupConfig())
        group.enabled = enabled

    def connection_changed(self, other: "BridgeConfig") -> bool:
        return any(getattr(self, key) != getattr(other, key) for key in CONNECTION_KEYS)

    def updated(self, key: str, value: Any) -> "BridgeConfig":
        """Return a validated copy with one field replaced."""
        if key not in BridgeConfig.model_fields:
            raise ConfigError(f"Unknown config key: {key}")
        data = self.model_dump()
        data[key] = value
        try:
            return BridgeConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid value for {key}: {e.errors()[0]['msg']}")


def sanitize_config(raw: Any) -> BridgeConfig:
    """Build a config from untrusted JSON.

    Unknown keys are ignored and every field with a bad value falls back to
    its default, so one broken entry never discards the whole file.
    """
    if not isinstance(raw, dict):
        return BridgeConfig()

    data = {k: v for k, v in raw.items() if k in BridgeConfig.model_fields}
    if isinstance(data.get("blacklist"), list):
        data["blacklist"] = [item for item in data["blacklist"] if isinstance(item, str)]
    if isinstance(data.get("group_configs"), dict):
        data["group_configs"] = {
            str(gid): {k: v for k, v in group.items() if k == "enabled" and isinstance(v, bool)}
            for gid, group in data["group_configs"].items()
            if isinstance(group, dict)
        }
    while True:
        try:
            return BridgeConfig.model_validate(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"]}
            if not bad:
                return BridgeConfig()
            for key in bad:
                logger.warning(f"Ignoring invalid config value for {key!r}")
                data.pop(key, None)


def config_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path:
        return Path(path).expanduser()
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config(path: Optional[Union[str, Path]] = None) -> BridgeConfig:
    """Load the config file, creating it with defaults when missing."""
    file = config_path(path)
    try:
        raw = json.loads(file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        config = BridgeConfig()
        try:
            save_config(config, file)
            logger.debug(f"Config file not found, wrote defaults to {file}")
        except ConfigError as e:
            logger.warning(str(e))
        return config
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load config {file}, using defaults: {e}")
        return BridgeConfig()
    return sanitize_config(raw)


def save_config(config: BridgeConfig, path: Optional[Union[str, Path]] = None) -> None:
    file = config_path(path)
    try:
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(json.dumps(config.model_dump(), indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to save config {file}: {e}")
