"""Shared test fixtures for the Kodi notifier."""
import json
import pytest
import httpx
from typing import Any

from config.settings import KodiConfig
from kodi.rpc import KodiRpcClient
from kodi.notifier import KodiNotifier


class FakeKodi:
    """
    In-process stand-in for a Kodi JSON-RPC endpoint.

    Records every POST and answers 200 unless a status (or an exception to
    raise) has been set for the method.
    """

    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.statuses: dict[str, int] = {}
        self.errors: dict[str, Exception] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(request)
        self.calls.append(body)
        method = body.get("method", "")
        if method in self.errors:
            raise self.errors[method]
        status = self.statuses.get(method, 200)
        return httpx.Response(status, json={"id": body.get("id"), "jsonrpc": "2.0", "result": "OK"})

    @property
    def methods(self) -> list[str]:
        return [c["method"] for c in self.calls]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def kodi_config() -> KodiConfig:
    return KodiConfig(
        enable=True,
        json_rpc="http://host/jsonrpc",
        username="kodi",
        password="secret",
        timeout=5,
        notify_interval=60,
        max_attempts=3,
    )


@pytest.fixture
def fake_kodi() -> FakeKodi:
    return FakeKodi()


@pytest.fixture
def rpc_client(kodi_config, fake_kodi) -> KodiRpcClient:
    return KodiRpcClient(kodi_config, transport=fake_kodi.transport())


@pytest.fixture
def notifier(kodi_config, rpc_client) -> KodiNotifier:
    return KodiNotifier(kodi_config, client=rpc_client)
