"""Access-control policies and the security guard."""

from feishu_channel.security.guard import SecurityGuard
from feishu_channel.security.policy import decide

__all__ = ["SecurityGuard", "decide"]
