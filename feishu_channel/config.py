"""Configuration loading from YAML + environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from feishu_channel.types import ConnectionMode, DmPolicy, FeishuDomain, GroupPolicy


class FeishuConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FEISHU_", frozen=True)

    # App credentials (from env)
    app_id: str = ""
    app_secret: str = ""

    # Platform
    domain: FeishuDomain = FeishuDomain.FEISHU
    connection_mode: ConnectionMode = ConnectionMode.WEBSOCKET

    # Access control. Empty allowed_users = deny all DMs, ["*"] = allow all.
    allowed_users: list[str] = Field(default_factory=list)
    dm_policy: DmPolicy | None = None
    group_policy: GroupPolicy | None = None
    # allow_from overrides allowed_users when set
    allow_from: list[str] | None = None
    group_allow_from: list[str] = Field(default_factory=list)
    group_require_mention: bool = True

    # Webhook mode
    encrypt_key: str | None = None
    verification_token: str | None = None
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 8081

    # Runtime
    log_level: str = "INFO"
    http_timeout: float = 10.0
    max_reconnect_attempts: int = 10
    reconnect_base_delay: float = 2.0
    queue_capacity: int = 256
    event_bus_capacity: int = 256
    dedup_window_seconds: float = 60.0

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # env beats values passed in (i.e. from YAML)
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @property
    def base_url(self) -> str:
        return self.domain.base_url

    def dm_allowlist(self) -> list[str]:
        """Effective DM allowlist: allow_from if set, else allowed_users."""
        if self.allow_from is not None:
            return list(self.allow_from)
        return list(self.allowed_users)

    def effective_dm_policy(self) -> DmPolicy:
        if self.dm_policy is not None:
            return self.dm_policy
        return DmPolicy.from_allowlist(self.dm_allowlist())

    def effective_group_policy(self) -> GroupPolicy:
        return self.group_policy if self.group_policy is not None else GroupPolicy.OPEN

    @classmethod
    def from_yaml(cls, path: str | Path = "feishu.yaml") -> FeishuConfig:
        """Load config from YAML file, with env vars taking precedence."""
        yaml_path = Path(path)
        yaml_data: dict[str, Any] = {}

        if yaml_path.exists():
            with yaml_path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            yaml_data = _flatten_yaml(raw.get("feishu", {}))

        return cls(**yaml_data)


def _flatten_yaml(data: dict, prefix: str = "") -> dict:
    """Flatten nested YAML into flat key-value pairs for Pydantic.

    ``webhook: {port: 9000}`` becomes ``webhook_port: 9000``.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(_flatten_yaml(value, full_key))
        else:
            flat[full_key] = value
    return flat
