"""Deferred, deduplicated notifications to a Kodi JSON-RPC endpoint."""
from kodi.rpc import (
    JsonRpcRequest,
    KodiRpcClient,
    KodiError,
    KodiStatusError,
    KodiTransportError,
)
from kodi.queue import NotificationQueue, QueuedNotification
from kodi.metrics import DispatchMetrics
from kodi.notifier import KodiNotifier, create_kodi_notifier
from kodi import methods

__all__ = [
    "JsonRpcRequest", "KodiRpcClient",
    "KodiError", "KodiStatusError", "KodiTransportError",
    "NotificationQueue", "QueuedNotification", "DispatchMetrics",
    "KodiNotifier", "create_kodi_notifier", "methods",
]
