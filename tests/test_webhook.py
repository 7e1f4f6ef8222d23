"""Test the webhook app with FastAPI's TestClient."""

import base64
import hashlib
import json
import os

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from fastapi.testclient import TestClient

from feishu_channel.connectors.webhook import (
    NONCE_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    compute_signature,
    create_webhook_app,
    decrypt_payload,
)
from feishu_channel.errors import MessageDecodeError

ENCRYPT_KEY = "test-encrypt-key"


def _encrypt(plain: str, key: str = ENCRYPT_KEY) -> str:
    aes_key = hashlib.sha256(key.encode()).digest()
    iv = os.urandom(16)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plain.encode()) + padder.finalize()
    encryptor = Cipher(algorithms.AES(aes_key), modes.CBC(iv)).encryptor()
    return base64.b64encode(iv + encryptor.update(padded) + encryptor.finalize()).decode()


def _client(delivered, **kwargs):
    return TestClient(create_webhook_app(delivered.append, **kwargs))


def test_decrypt_payload_round_trip():
    assert decrypt_payload(_encrypt('{"a": 1}'), ENCRYPT_KEY) == '{"a": 1}'


def test_decrypt_payload_rejects_garbage():
    with pytest.raises(MessageDecodeError):
        decrypt_payload("not base64!!", ENCRYPT_KEY)
    with pytest.raises(MessageDecodeError):
        decrypt_payload(base64.b64encode(b"short").decode(), ENCRYPT_KEY)


def test_get_challenge():
    client = _client([])
    resp = client.get("/", params={"challenge": "abc123"})
    assert resp.status_code == 200
    assert resp.json() == {"challenge": "abc123"}


def test_get_encrypted_challenge():
    client = _client([], encrypt_key=ENCRYPT_KEY)
    resp = client.get("/", params={"encrypt": _encrypt("xyz")})
    assert resp.json() == {"challenge": "xyz"}


def test_get_without_challenge_is_bad_request():
    assert _client([]).get("/").status_code == 400


def test_post_url_verification():
    client = _client([], verification_token="vtoken")
    resp = client.post("/", json={"challenge": "c1", "token": "vtoken", "type": "url_verification"})
    assert resp.json() == {"challenge": "c1"}

    resp = client.post("/", json={"challenge": "c1", "token": "wrong", "type": "url_verification"})
    assert resp.status_code == 401


def test_message_event_delivered(envelope):
    delivered = []
    client = _client(delivered, verification_token="vtoken")

    resp = client.post("/", json=envelope(message_id="om_hook", text="from webhook"))

    assert resp.status_code == 200
    assert resp.json() == {}
    assert [(m.id, m.content) for m in delivered] == [("om_hook", "from webhook")]


def test_token_mismatch_rejected(envelope):
    delivered = []
    client = _client(delivered, verification_token="vtoken")

    resp = client.post("/", json=envelope(token="forged"))

    assert resp.status_code == 401
    assert delivered == []


def test_other_event_types_ignored(envelope):
    delivered = []
    client = _client(delivered)

    resp = client.post("/", json=envelope(event_type="im.chat.member.bot.added_v1"))

    assert resp.status_code == 200
    assert delivered == []


def test_encrypted_event_delivered(envelope):
    delivered = []
    client = _client(delivered, encrypt_key=ENCRYPT_KEY)
    body = json.dumps({"encrypt": _encrypt(json.dumps(envelope(message_id="om_secret")))}).encode()
    headers = {
        TIMESTAMP_HEADER: "1700000000",
        NONCE_HEADER: "nonce",
        SIGNATURE_HEADER: compute_signature("1700000000", "nonce", ENCRYPT_KEY, body),
        "Content-Type": "application/json",
    }

    resp = client.post("/", content=body, headers=headers)

    assert resp.status_code == 200
    assert [m.id for m in delivered] == ["om_secret"]


def test_signature_mismatch_rejected(envelope):
    delivered = []
    client = _client(delivered, encrypt_key=ENCRYPT_KEY)
    body = json.dumps({"encrypt": _encrypt(json.dumps(envelope()))}).encode()
    headers = {TIMESTAMP_HEADER: "1", NONCE_HEADER: "n", SIGNATURE_HEADER: "0" * 64}

    resp = client.post("/", content=body, headers=headers)

    assert resp.status_code == 401
    assert delivered == []


def test_encrypted_payload_without_key(envelope):
    client = _client([])
    resp = client.post("/", json={"encrypt": _encrypt(json.dumps(envelope()))})
    assert resp.status_code == 400
    assert resp.json() == {"error": "encrypt_key required"}


def test_invalid_json_and_envelope():
    client = _client([])
    assert client.post("/", content=b"{not json").status_code == 400
    assert client.post("/", json={"event": {}}).status_code == 400


def test_malformed_message_event(envelope):
    payload = envelope()
    del payload["event"]["message"]
    assert _client([]).post("/", json=payload).status_code == 400
