"""Shared HTTP client management for the upstream connection."""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from ..helpers import info_log, error_log
from ..config import settings


def _connection_pool_config() -> dict:
    return {
        "limits": httpx.Limits(
            max_keepalive_connections=20,
            max_connections=100,
            keepalive_expiry=30,
        ),
        "timeout": httpx.Timeout(
            connect=settings.CONNECT_TIMEOUT,
            read=settings.READ_TIMEOUT,
            write=30.0,
            pool=10.0,
        ),
        "http2": True,
    }


class NetworkManager:
    """Own the pooled httpx client; the client carries no per-request state."""

    def __init__(self) -> None:
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()
        self._transport: Optional[httpx.AsyncBaseTransport] = None

    def set_transport(self, transport: Optional[httpx.AsyncBaseTransport]) -> None:
        """Route upstream calls through a custom transport (in-process upstreams, tests)."""
        self._transport = transport
        self._client = None

    async def get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                config = _connection_pool_config()
                if self._transport is not None:
                    info_log("[CLIENT] 使用自定义传输创建客户端")
                    config.pop("http2")
                    self._client = httpx.AsyncClient(transport=self._transport, **config)
                elif settings.HTTP_PROXY:
                    info_log("[CLIENT] 为代理创建客户端", proxy=settings.HTTP_PROXY)
                    self._client = httpx.AsyncClient(proxy=settings.HTTP_PROXY, **config)
                else:
                    info_log("[CLIENT] 创建默认客户端（无代理）")
                    self._client = httpx.AsyncClient(**config)
            return self._client

    async def cleanup_clients(self) -> None:
        async with self._client_lock:
            client = self._client
            self._client = None

        if client:
            try:
                await client.aclose()
                info_log("[CLIENT] 客户端已关闭")
            except Exception as exc:  # pragma: no cover - 问题记录即可
                error_log("[CLIENT] 关闭客户端失败", error=str(exc))


network_manager = NetworkManager()
