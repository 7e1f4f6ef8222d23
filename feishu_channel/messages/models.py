"""Core message types flowing through the channel.

``InboundMessage`` is the platform-neutral shape handed to application code.
The ``Wire*`` models mirror the Feishu ``im.message.receive_v1`` JSON payload
(schema 2.0) and are only used while decoding.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from feishu_channel.types import ChatKind


class InboundMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sender: str
    content: str = ""
    channel: str = ""  # chat_id the message belongs to
    timestamp: int = 0  # epoch milliseconds
    chat_kind: ChatKind = ChatKind.UNKNOWN
    mentioned_open_ids: tuple[str, ...] = ()


class WireUserId(BaseModel):
    open_id: str | None = None
    user_id: str | None = None
    union_id: str | None = None


class WireMention(BaseModel):
    key: str = ""
    id: WireUserId = Field(default_factory=WireUserId)
    name: str = ""


class WireSender(BaseModel):
    sender_id: WireUserId = Field(default_factory=WireUserId)
    sender_type: str | None = None


class WireMessage(BaseModel):
    message_id: str
    chat_id: str = ""
    chat_type: str | None = None
    message_type: str = "text"
    content: str = ""
    create_time: str | None = None
    mentions: list[WireMention] | None = None
    root_id: str | None = None
    parent_id: str | None = None


class WireMessageEvent(BaseModel):
    sender: WireSender = Field(default_factory=WireSender)
    message: WireMessage


class WireEventHeader(BaseModel):
    event_id: str = ""
    event_type: str = ""
    create_time: str = ""
    token: str = ""
    app_id: str = ""
    tenant_key: str = ""


class WireEventEnvelope(BaseModel):
    schema_: str | None = Field(default=None, alias="schema")
    header: WireEventHeader
    event: dict = Field(default_factory=dict)
