"""Authorization and @mention filter applied before delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from feishu_channel.messages.models import InboundMessage
from feishu_channel.security.guard import SecurityGuard
from feishu_channel.types import ChatKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterParams:
    security: SecurityGuard
    bot_open_id: str | None = None
    group_require_mention: bool = True


def should_forward_message(msg: InboundMessage, params: FilterParams) -> bool:
    """True if ``msg`` may reach the application.

    When the bot's open_id is unknown, group messages are never
    mention-filtered; they still need to pass the group policy.
    """
    if msg.chat_kind is ChatKind.GROUP:
        if not params.security.is_group_allowed(msg.sender):
            logger.warning("Feishu: ignoring group message from unauthorized user: %s", msg.sender)
            return False
        if params.group_require_mention and params.bot_open_id is not None:
            if params.bot_open_id not in msg.mentioned_open_ids:
                logger.debug("Feishu: ignoring group message (bot not mentioned)")
                return False
    elif not params.security.is_dm_allowed(msg.sender):
        logger.warning("Feishu: ignoring DM from unauthorized user: %s", msg.sender)
        return False

    return True
