"""Auth adapter: tenant_access_token via the internal-app endpoint."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from feishu_channel.connectors.api import FeishuApiClient, FeishuApiError
from feishu_channel.connectors.base import AuthPort
from feishu_channel.errors import TokenFetchError, TokenRefreshError
from feishu_channel.kernel.event_bus import EventBus, TokenRefreshed

logger = logging.getLogger(__name__)

TOKEN_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
REFRESH_MARGIN_SECS = 300


class HttpAuthAdapter(AuthPort):
    def __init__(
        self,
        api: FeishuApiClient,
        app_id: str,
        app_secret: str,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self._app_id = app_id
        self._app_secret = app_secret
        self._event_bus = event_bus
        self._clock = clock
        self._token: str | None = None
        self._refresh_at = 0.0

    def is_token_expired(self) -> bool:
        return self._token is None or self._clock() >= self._refresh_at

    async def get_token(self) -> str:
        if self._token and not self.is_token_expired():
            return self._token

        error_cls = TokenRefreshError if self._token else TokenFetchError
        try:
            body = await self._api.call(
                "POST", TOKEN_PATH, json={"app_id": self._app_id, "app_secret": self._app_secret}
            )
        except (httpx.HTTPError, FeishuApiError, ValueError) as e:
            raise error_cls(str(e)) from e

        token = body.get("tenant_access_token")
        if not token or not isinstance(token, str):
            raise error_cls("response carried no tenant_access_token")
        try:
            expire = int(body.get("expire", 0))
        except (TypeError, ValueError) as e:
            raise error_cls(f"invalid expire: {body.get('expire')!r}") from e

        self._token = token
        # refresh a little early, but never sooner than half the lifetime
        self._refresh_at = self._clock() + max(expire - REFRESH_MARGIN_SECS, expire // 2)
        logger.info("Auth: tenant_access_token refreshed, expires in %ds", expire)
        if self._event_bus is not None:
            self._event_bus.publish(TokenRefreshed(expires_in_secs=expire))
        return token
