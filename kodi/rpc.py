"""
Kodi JSON-RPC transport.

Provides:
- KodiError: structured error hierarchy with a retryable flag
- JsonRpcRequest: request envelope with lazy jsonrpc/id defaulting
- KodiRpcClient: pooled httpx client doing Basic-auth POSTs and pings
"""
from __future__ import annotations

import asyncio
import json
import uuid
import structlog
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config.settings import KodiConfig

logger = structlog.get_logger()

JSONRPC_VERSION = "2.0"
PING_METHOD = "JSONRPC.Ping"


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class KodiError(Exception):
    """Base exception for all Kodi RPC operations."""

    def __init__(self, message: str, method: str = "", retryable: bool = False):
        self.method = method
        self.retryable = retryable
        super().__init__(message)


class KodiStatusError(KodiError):
    """Kodi answered with a status other than 200."""

    def __init__(self, status_code: int, reason: str = "", method: str = ""):
        self.status_code = status_code
        super().__init__(
            f"{status_code} {reason}".strip(), method, retryable=status_code >= 500,
        )


class KodiTransportError(KodiError):
    """DNS, connect, TLS, timeout or read failure before a full response arrived."""

    def __init__(self, message: str, method: str = ""):
        super().__init__(message, method, retryable=True)


# ══════════════════════════════════════════════════════════════
#  REQUEST ENVELOPE
# ══════════════════════════════════════════════════════════════

@dataclass
class JsonRpcRequest:
    """A single JSON-RPC call. jsonrpc and id stay empty until the request is sent."""
    method: str
    params: Any = None
    jsonrpc: str = ""
    id: str = ""

    def prepare(self) -> None:
        if not self.jsonrpc:
            self.jsonrpc = JSONRPC_VERSION
        if not self.id:
            self.id = f"req_{uuid.uuid4().hex[:12]}"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method}
        if self.params is not None:
            d["params"] = self.params
        return d


# ══════════════════════════════════════════════════════════════
#  CLIENT
# ══════════════════════════════════════════════════════════════

class KodiRpcClient:
    """
    Sends JsonRpcRequests to the configured Kodi endpoint.

    One httpx.AsyncClient is created lazily and reused across calls.
    Pass `transport` to route requests elsewhere (httpx.MockTransport in tests).
    """

    def __init__(self, config: KodiConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=httpx.BasicAuth(self.config.username, self.config.password),
                headers={"Content-Type": "application/json"},
                timeout=float(self.config.timeout),
                transport=self._transport,
            )
        return self._client

    async def request(self, rpc_request: JsonRpcRequest) -> bytes:
        """Send one request and return the raw response body."""
        rpc_request.prepare()
        logger.info("kodi_request", method=rpc_request.method, id=rpc_request.id)
        payload = json.dumps(rpc_request.to_dict())

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.request_retries),
            wait=wait_exponential(multiplier=0.5, max=5),
            retry=retry_if_exception_type(KodiTransportError),
            reraise=True,
        ):
            with attempt:
                return await self._post_within_timeout(payload, rpc_request.method)

    async def _post_within_timeout(self, payload: str, method: str) -> bytes:
        # httpx timeouts apply per phase; this bounds the whole exchange
        try:
            return await asyncio.wait_for(self._post(payload, method), timeout=self.config.timeout)
        except asyncio.TimeoutError as e:
            raise KodiTransportError(f"no complete response within {self.config.timeout}s", method) from e

    async def _post(self, payload: str, method: str) -> bytes:
        client = self._get_client()
        try:
            async with client.stream("POST", self.config.json_rpc, content=payload) as response:
                if response.status_code != 200:
                    raise KodiStatusError(response.status_code, response.reason_phrase, method)
                return await response.aread()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise KodiTransportError(str(e) or e.__class__.__name__, method) from e

    async def ping(self) -> bool:
        """Liveness check. Never raises; failures are logged and reported as False."""
        try:
            await self.request(JsonRpcRequest(method=PING_METHOD))
        except KodiError as e:
            logger.warning("kodi_ping_failed", error=str(e))
            return False
        return True

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("kodi_client_close_failed", error=str(e))
        self._client = None
