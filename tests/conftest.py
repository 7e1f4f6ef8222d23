"""Shared fixtures: Feishu wire payload builders."""

from __future__ import annotations

import json

import pytest


def _event(
    message_id: str = "om_1",
    sender: str = "ou_alice",
    text: str = "hello",
    chat_type: str | None = "p2p",
    chat_id: str = "oc_chat",
    mentions: list[str] | None = None,
    message_type: str = "text",
    create_time: str = "1700000000000",
) -> dict:
    message = {
        "message_id": message_id,
        "chat_id": chat_id,
        "message_type": message_type,
        "content": json.dumps({"text": text}) if message_type == "text" else text,
        "create_time": create_time,
    }
    if chat_type is not None:
        message["chat_type"] = chat_type
    if mentions:
        message["mentions"] = [
            {"key": f"@_user_{i + 1}", "id": {"open_id": oid}, "name": f"user{i + 1}"}
            for i, oid in enumerate(mentions)
        ]
    return {
        "sender": {"sender_id": {"open_id": sender}, "sender_type": "user"},
        "message": message,
    }


@pytest.fixture
def message_event():
    """Factory for the ``event`` body of an im.message.receive_v1 payload."""
    return _event


@pytest.fixture
def envelope(message_event):
    """Factory for a full schema 2.0 envelope around a message event."""

    def build(event_type: str = "im.message.receive_v1", token: str = "vtoken", **kwargs) -> dict:
        return {
            "schema": "2.0",
            "header": {
                "event_id": "ev_1",
                "event_type": event_type,
                "create_time": "1700000000000",
                "token": token,
                "app_id": "cli_test",
                "tenant_key": "tk",
            },
            "event": message_event(**kwargs),
        }

    return build
