"""Encoding / decoding of Feishu message content. Pure functions, no I/O."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from feishu_channel.errors import MessageDecodeError
from feishu_channel.messages.models import InboundMessage, WireMention, WireMessageEvent
from feishu_channel.types import ChatKind

logger = logging.getLogger(__name__)

MESSAGE_RECEIVE_EVENT = "im.message.receive_v1"


def decode_message_content(content: str, message_type: str) -> str:
    """Map raw message content JSON to plain text.

    Only ``text`` messages are unwrapped; anything that fails to parse, and
    every other message type, passes through as the raw string.
    """
    if message_type != "text":
        return content
    try:
        parsed = json.loads(content)
    except ValueError:
        return content
    if isinstance(parsed, dict) and isinstance(parsed.get("text"), str):
        return parsed["text"]
    return content


def encode_text_message(text: str) -> str:
    return json.dumps({"text": text}, ensure_ascii=False)


def infer_receive_id_type(receive_id: str) -> str:
    """Infer Feishu ``receive_id_type`` from the id prefix.

    oc_ -> chat_id (group), on_ -> union_id (cross-app user), else open_id.
    """
    if receive_id.startswith("oc_"):
        return "chat_id"
    if receive_id.startswith("on_"):
        return "union_id"
    return "open_id"


def mentioned_open_ids(mentions: list[WireMention] | None) -> tuple[str, ...]:
    if not mentions:
        return ()
    return tuple(m.id.open_id for m in mentions if m.id.open_id)


def decode_message_event(event: dict) -> InboundMessage:
    """Decode the ``event`` body of an ``im.message.receive_v1`` payload.

    Raises MessageDecodeError when the payload is structurally unusable.
    """
    try:
        wire = WireMessageEvent.model_validate(event)
    except ValidationError as e:
        raise MessageDecodeError(str(e)) from e

    msg = wire.message
    try:
        timestamp = int(msg.create_time or 0)
    except ValueError:
        logger.debug("decode: bad create_time %r on %s", msg.create_time, msg.message_id)
        timestamp = 0

    return InboundMessage(
        id=msg.message_id,
        sender=wire.sender.sender_id.open_id or "",
        content=decode_message_content(msg.content, msg.message_type),
        channel=msg.chat_id,
        timestamp=timestamp,
        chat_kind=ChatKind.from_wire(msg.chat_type),
        mentioned_open_ids=mentioned_open_ids(msg.mentions),
    )
