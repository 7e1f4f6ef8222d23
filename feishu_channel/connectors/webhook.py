"""Webhook adapter: FastAPI app for Feishu event subscriptions.

GET answers the URL-verification challenge, POST receives (optionally
encrypted) event envelopes. With an encrypt key configured Feishu encrypts
bodies with AES-256-CBC: key = SHA-256(encrypt_key), IV = first 16 bytes of
the base64-decoded payload, PKCS#7 padding.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Callable

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from feishu_channel.errors import MessageDecodeError, WebhookSignatureError
from feishu_channel.messages.codec import MESSAGE_RECEIVE_EVENT, decode_message_event
from feishu_channel.messages.models import InboundMessage, WireEventEnvelope

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Lark-Signature"
TIMESTAMP_HEADER = "X-Lark-Request-Timestamp"
NONCE_HEADER = "X-Lark-Request-Nonce"


def decrypt_payload(encrypted: str, encrypt_key: str) -> str:
    key = hashlib.sha256(encrypt_key.encode("utf-8")).digest()
    try:
        raw = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MessageDecodeError(f"invalid encrypted payload base64: {e}") from e
    if len(raw) < 32 or len(raw) % 16:
        raise MessageDecodeError("encrypted payload has invalid length")

    iv, ciphertext = raw[:16], raw[16:]
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except ValueError as e:
        raise MessageDecodeError(f"decrypt failed: {e}") from e


def compute_signature(timestamp: str, nonce: str, encrypt_key: str, body: bytes) -> str:
    content = (timestamp + nonce + encrypt_key).encode("utf-8") + body
    return hashlib.sha256(content).hexdigest()


def verify_signature(headers, encrypt_key: str, body: bytes) -> None:
    """Check X-Lark-Signature when Feishu sent one. Raises WebhookSignatureError."""
    signature = headers.get(SIGNATURE_HEADER)
    if not signature:
        return
    expected = compute_signature(
        headers.get(TIMESTAMP_HEADER, ""), headers.get(NONCE_HEADER, ""), encrypt_key, body
    )
    if not hmac.compare_digest(signature.encode(), expected.encode()):
        raise WebhookSignatureError()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_webhook_app(
    deliver: Callable[[InboundMessage], object],
    encrypt_key: str | None = None,
    verification_token: str | None = None,
) -> FastAPI:
    """Build the webhook app. ``deliver`` receives every decoded message."""
    app = FastAPI(title="feishu-webhook", docs_url=None, redoc_url=None)

    @app.get("/")
    async def url_verification(challenge: str | None = None, encrypt: str | None = None):
        if challenge is None and encrypt and encrypt_key:
            try:
                challenge = decrypt_payload(encrypt, encrypt_key)
            except MessageDecodeError as e:
                logger.error("webhook: challenge decrypt failed: %s", e)
        if challenge is None:
            return _error(400, "missing challenge or decrypt failed")
        return {"challenge": challenge}

    @app.post("/")
    async def receive_event(request: Request):
        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.error("webhook: invalid JSON: %s", e)
            return _error(400, "invalid json")
        if not isinstance(payload, dict):
            return _error(400, "invalid json")

        if encrypt_key:
            try:
                verify_signature(request.headers, encrypt_key, body)
            except WebhookSignatureError as e:
                logger.warning("webhook: %s", e)
                return _error(401, "invalid signature")

        encrypted = payload.get("encrypt")
        if encrypted is not None:
            if not encrypt_key:
                logger.error("webhook: encrypted payload but no encrypt_key")
                return _error(400, "encrypt_key required")
            try:
                payload = json.loads(decrypt_payload(encrypted, encrypt_key))
            except (MessageDecodeError, ValueError) as e:
                logger.error("webhook: decrypt failed: %s", e)
                return _error(400, "decrypt failed")

        if "challenge" in payload:
            if verification_token and payload.get("token") != verification_token:
                return _error(401, "invalid verification token")
            return {"challenge": payload["challenge"]}

        try:
            envelope = WireEventEnvelope.model_validate(payload)
        except ValidationError as e:
            logger.error("webhook: parse envelope failed: %s", e)
            return _error(400, "invalid envelope")

        if verification_token and envelope.header.token != verification_token:
            logger.warning("webhook: verification token mismatch for %s", envelope.header.event_id)
            return _error(401, "invalid verification token")

        if envelope.header.event_type == MESSAGE_RECEIVE_EVENT:
            try:
                msg = decode_message_event(envelope.event)
            except MessageDecodeError as e:
                logger.error("webhook: parse message event failed: %s", e)
                return _error(400, "invalid message event")
            deliver(msg)
        else:
            logger.debug("webhook: ignoring event type %s", envelope.header.event_type)

        return {}

    return app
