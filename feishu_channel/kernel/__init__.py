"""Microkernel runtime: capability contract, event bus, lifecycle kernel."""

from feishu_channel.kernel.capability import Capability
from feishu_channel.kernel.event_bus import (
    ConnectionStateChanged,
    EventBus,
    FeishuEvent,
    MessageReceived,
    Subscription,
    TokenRefreshed,
)
from feishu_channel.kernel.kernel import FeishuKernel

__all__ = [
    "Capability",
    "ConnectionStateChanged",
    "EventBus",
    "FeishuEvent",
    "FeishuKernel",
    "MessageReceived",
    "Subscription",
    "TokenRefreshed",
]
