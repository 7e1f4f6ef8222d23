"""Thin httpx wrapper around the Feishu open API."""

from __future__ import annotations

from typing import Any

import httpx


class FeishuApiError(Exception):
    """Feishu answered with a non-zero ``code``."""

    def __init__(self, code: int, msg: str) -> None:
        self.code = code
        self.msg = msg
        super().__init__(f"API error: code={code}, msg={msg}")


class FeishuApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            self._client = httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            )
        return self._client

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def call(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded body.

        Raises httpx.HTTPError on transport/status failures, ValueError when the
        body is not a JSON object and FeishuApiError when it carries a non-zero
        ``code``.
        """
        headers = {"Authorization": f"Bearer {token}"} if token else None
        resp = await self._get_client().request(method, path, params=params, json=json, headers=headers)
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict):
            raise ValueError(f"expected a JSON object, got {type(body).__name__}")
        code = body.get("code", 0)
        if code != 0:
            raise FeishuApiError(code, body.get("msg", ""))
        return body
