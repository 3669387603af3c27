"""Shared async HTTP plumbing for the remote services."""

from typing import Any

import httpx
from loguru import logger


class ServiceClient:
    """
    Base class for clients of the admin API.

    Holds one `httpx.AsyncClient`, created lazily unless one is injected.
    """

    def __init__(
        self,
        api_base: str,
        token: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_base}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")
        return await self._get_client().request(method, url, headers=self._headers(), **kwargs)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decode a JSON body, returning an empty dict for non-JSON bodies."""
        try:
            return response.json()
        except ValueError:
            return {}

    @classmethod
    def _error_message(cls, response: httpx.Response) -> str:
        body = cls._json(response)
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if message:
                return str(message)
        return f"HTTP {response.status_code}"

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
