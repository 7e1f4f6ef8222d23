"""Shared enums and type aliases."""

from enum import Enum

WILDCARD = "*"


class FeishuDomain(str, Enum):
    FEISHU = "feishu"
    LARK = "lark"

    @property
    def base_url(self) -> str:
        if self is FeishuDomain.LARK:
            return "https://open.larksuite.com"
        return "https://open.feishu.cn"


class ConnectionMode(str, Enum):
    WEBSOCKET = "websocket"
    WEBHOOK = "webhook"


class ChatKind(str, Enum):
    DIRECT = "p2p"
    GROUP = "group"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, chat_type: str | None) -> "ChatKind":
        if chat_type == "p2p":
            return cls.DIRECT
        if chat_type == "group":
            return cls.GROUP
        return cls.UNKNOWN


class DmPolicy(str, Enum):
    PAIRING = "pairing"  # allow-listed users only
    OPEN = "open"
    DENY = "deny"

    @classmethod
    def _missing_(cls, value):
        # "allowlist" is the older spelling of pairing
        if value == "allowlist":
            return cls.PAIRING
        return None

    @classmethod
    def from_allowlist(cls, allowlist: list[str] | tuple[str, ...]) -> "DmPolicy":
        """Derive a DM policy when only an allowlist is configured.

        empty -> deny, contains "*" -> open, otherwise pairing.
        """
        if not allowlist:
            return cls.DENY
        if WILDCARD in allowlist:
            return cls.OPEN
        return cls.PAIRING


class GroupPolicy(str, Enum):
    ALLOWLIST = "allowlist"
    OPEN = "open"
    DENY = "deny"
