"""Channel error taxonomy.

Every error carries a stable ``E-FEISHU-xxxx`` code so log lines can be
grepped regardless of the underlying cause.
"""

from __future__ import annotations


class FeishuError(Exception):
    code = "E-FEISHU-0000"
    summary = "feishu channel error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = f"{self.code}: {self.summary}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# -- Auth (1xxx) --

class TokenFetchError(FeishuError):
    code = "E-FEISHU-1001"
    summary = "failed to obtain tenant_access_token"


class TokenRefreshError(FeishuError):
    code = "E-FEISHU-1002"
    summary = "token expired and refresh failed"


# -- Connection (2xxx) --

class ConnectionFailedError(FeishuError):
    code = "E-FEISHU-2001"
    summary = "event connection failed"


class DisconnectedError(FeishuError):
    code = "E-FEISHU-2002"
    summary = "event connection dropped"


class ReconnectExhaustedError(FeishuError):
    code = "E-FEISHU-2003"
    summary = "exceeded max reconnect attempts"


# -- Message (3xxx) --

class MessageSendError(FeishuError):
    code = "E-FEISHU-3001"
    summary = "message send failed"


class MessageDecodeError(FeishuError):
    code = "E-FEISHU-3002"
    summary = "message decode failed"


# -- Security (4xxx) --

class UnauthorizedUserError(FeishuError):
    code = "E-FEISHU-4001"
    summary = "unauthorized user"


class WebhookSignatureError(FeishuError):
    code = "E-FEISHU-4002"
    summary = "webhook signature verification failed"


class BotInfoFetchError(FeishuError):
    code = "E-FEISHU-4501"
    summary = "bot info fetch failed"


# -- Capability (5xxx) --

class CapabilityStartError(FeishuError):
    code = "E-FEISHU-5001"
    summary = "capability start failed"

    def __init__(self, capability: str, cause: BaseException | str) -> None:
        self.capability = capability
        super().__init__(f"{capability}: {cause}")


class CapabilityNotFoundError(FeishuError):
    code = "E-FEISHU-5002"
    summary = "capability not found"
