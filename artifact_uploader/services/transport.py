"""HTTP transport adapter for the upload protocol."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..errors import HttpError
from ..models import is_metadata_path

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
BINARY_CONTENT_TYPE = "application/octet-stream"


def content_type_for(path: str) -> str:
    """Pick the Content-Type of an uploaded file from its extension."""
    return JSON_CONTENT_TYPE if is_metadata_path(path) else BINARY_CONTENT_TYPE


@dataclass(frozen=True)
class TransportConfig:
    """
    Immutable transport configuration.

    default_headers are attached to every API request, but never to
    presigned storage uploads.
    """
    default_headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = 60.0
    # Underlying httpx transport, e.g. httpx.MockTransport in tests
    http_transport: Optional[httpx.AsyncBaseTransport] = None


class HTTPTransport:
    """
    httpx-based transport.

    Implements ITransport protocol.
    """

    def __init__(self, config: Optional[TransportConfig] = None):
        self._config = config or TransportConfig()
        self._client: Optional[httpx.AsyncClient] = None
        self._presigned_client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers=self._config.default_headers,
            timeout=self._config.timeout,
            transport=self._config.http_transport,
        )
        # Presigned URLs reject requests carrying authorization
        self._presigned_client = httpx.AsyncClient(
            timeout=self._config.timeout,
            transport=self._config.http_transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._presigned_client:
            await self._presigned_client.aclose()
            self._presigned_client = None

    def _api(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("HTTPTransport not initialized. Use 'async with' context.")
        return self._client

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise HttpError(f"{method} {url} failed", body=str(exc)) from exc

    async def get(self, url: str) -> httpx.Response:
        return await self._send(self._api(), "GET", url)

    async def post(self, url: str, json: Dict[str, Any]) -> httpx.Response:
        return await self._send(self._api(), "POST", url, json=json)

    async def put(self, url: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        if json is None:
            return await self._send(self._api(), "PUT", url)
        return await self._send(self._api(), "PUT", url, json=json)

    async def presigned_put(
        self,
        path: str,
        url: str,
        md5sum: Optional[str],
        content: Any,
    ) -> httpx.Response:
        if not self._presigned_client:
            raise RuntimeError("HTTPTransport not initialized. Use 'async with' context.")

        headers = {"Content-Type": content_type_for(path)}
        if md5sum is not None:
            headers["Content-MD5"] = md5sum

        if isinstance(content, Path):
            content = await asyncio.to_thread(content.read_bytes)
        elif isinstance(content, str):
            content = content.encode("utf-8")

        return await self._send(
            self._presigned_client, "PUT", url, headers=headers, content=content
        )
