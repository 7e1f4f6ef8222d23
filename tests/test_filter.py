"""Test the authorization / @mention filter and message deduplication."""

import logging

from feishu_channel.gateway.dedup import MessageDeduplicator
from feishu_channel.gateway.filter import FilterParams, should_forward_message
from feishu_channel.messages.models import InboundMessage
from feishu_channel.security.guard import SecurityGuard
from feishu_channel.types import ChatKind, DmPolicy, GroupPolicy

BOT = "ou_bot"


def _msg(sender: str, kind: ChatKind = ChatKind.DIRECT, mentions=()) -> InboundMessage:
    return InboundMessage(id="m1", sender=sender, content="hi", channel="oc_chat",
                          chat_kind=kind, mentioned_open_ids=tuple(mentions))


def _params(bot_open_id=BOT, require_mention=True) -> FilterParams:
    security = SecurityGuard.with_policies(
        ["ou_allowed"], DmPolicy.PAIRING, ["ou_member"], GroupPolicy.ALLOWLIST
    )
    return FilterParams(security=security, bot_open_id=bot_open_id, group_require_mention=require_mention)


def test_dm_from_allowed_sender_forwarded():
    assert should_forward_message(_msg("ou_allowed"), _params())


def test_dm_from_blocked_sender_dropped(caplog):
    with caplog.at_level(logging.WARNING):
        assert not should_forward_message(_msg("ou_blocked"), _params())
    assert "unauthorized" in caplog.text


def test_unknown_kind_uses_dm_policy():
    assert should_forward_message(_msg("ou_allowed", ChatKind.UNKNOWN), _params())
    assert not should_forward_message(_msg("ou_member", ChatKind.UNKNOWN), _params())


def test_group_from_disallowed_sender_dropped_even_if_mentioned():
    msg = _msg("ou_allowed", ChatKind.GROUP, mentions=[BOT])
    assert not should_forward_message(msg, _params())


def test_group_requires_mention_when_bot_known():
    assert not should_forward_message(_msg("ou_member", ChatKind.GROUP), _params())
    assert not should_forward_message(_msg("ou_member", ChatKind.GROUP, ["ou_other"]), _params())
    assert should_forward_message(_msg("ou_member", ChatKind.GROUP, ["ou_other", BOT]), _params())


def test_group_mention_not_required_when_disabled():
    msg = _msg("ou_member", ChatKind.GROUP)
    assert should_forward_message(msg, _params(require_mention=False))


def test_group_mention_skipped_when_bot_unknown():
    msg = _msg("ou_member", ChatKind.GROUP)
    assert should_forward_message(msg, _params(bot_open_id=None))
    # authorization still applies
    assert not should_forward_message(_msg("ou_stranger", ChatKind.GROUP), _params(bot_open_id=None))


def test_dedup_drops_repeat_within_window():
    now = [0.0]
    dedup = MessageDeduplicator(window=60, clock=lambda: now[0])
    assert not dedup.is_duplicate("om_1")
    now[0] = 30
    assert dedup.is_duplicate("om_1")
    assert not dedup.is_duplicate("om_2")


def test_dedup_forgets_after_window():
    now = [0.0]
    dedup = MessageDeduplicator(window=60, clock=lambda: now[0])
    dedup.is_duplicate("om_1")
    now[0] = 61
    assert not dedup.is_duplicate("om_1")
    assert len(dedup) == 1


def test_dedup_ignores_empty_id():
    dedup = MessageDeduplicator()
    assert not dedup.is_duplicate("")
    assert not dedup.is_duplicate("")
    assert len(dedup) == 0
