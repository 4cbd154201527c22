"""
Kodi Notifier — periodic, deduplicated flush of pending Kodi JSON-RPC calls.

Runs as a background task next to whatever produces notifications.

Flow:
    Producer → enqueue(name, request)    (no-op when disabled, dedup by name)
    → every notify_interval seconds: ping Kodi
    → if Kodi answers, send every pending request once
    → failed requests wait for the next cycle until max_attempts
"""
from __future__ import annotations

import asyncio
import time
import structlog
from typing import Any, Optional

from config.settings import KodiConfig, get_settings
from kodi.metrics import DispatchMetrics
from kodi.queue import NotificationQueue, QueuedNotification
from kodi.rpc import JsonRpcRequest, KodiRpcClient

logger = structlog.get_logger()


class KodiNotifier:
    """
    Owns the notification queue and the loop that flushes it.

    Usage:
        notifier = KodiNotifier(settings.kodi)
        await notifier.start()
        await notifier.enqueue("library-scan", methods.scan_video_library())
        ...
        await notifier.stop()
    """

    def __init__(
        self,
        config: KodiConfig,
        client: Optional[KodiRpcClient] = None,
        queue: Optional[NotificationQueue] = None,
    ):
        self.config = config
        self.client = client if client is not None else KodiRpcClient(config)
        self.queue = queue if queue is not None else NotificationQueue(max_attempts=config.max_attempts)
        self.metrics = DispatchMetrics()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.config.enable

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def enqueue(self, name: str, request: JsonRpcRequest) -> bool:
        """
        Queue a request for the next flush.

        Returns False when the notifier is disabled. A name that is already
        pending keeps its original request and still returns True.
        """
        if not self.config.enable:
            return False

        if await self.queue.add(name, request):
            logger.debug("kodi_notification_queued", name=name, method=request.method)
        return True

    def size(self) -> int:
        return self.queue.size()

    async def start(self) -> None:
        """Start the flush loop as a background task."""
        if not self.config.enable:
            logger.info("kodi_notifier_disabled")
            return
        if self.running:
            return

        self._running = True
        self._task = asyncio.create_task(self._notify_loop(), name="kodi_notifier")
        logger.info("kodi_notifier_started",
                    endpoint=self.config.json_rpc,
                    interval_s=self.config.notify_interval)

    async def stop(self) -> None:
        """Stop the loop and release the HTTP client. Pending notifications are not sent."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self.client.close()
        logger.info("kodi_notifier_stopped", pending=self.size())

    async def _notify_loop(self) -> None:
        """Main loop — runs until stopped."""
        while self._running:
            await asyncio.sleep(self.config.notify_interval)
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("kodi_cycle_error", error=str(e), exc_info=True)
                self.metrics.record_error(str(e))

    async def run_cycle(self) -> dict[str, Any]:
        """
        Single flush cycle:
        1. Skip when disabled or nothing is pending
        2. Ping Kodi; give up until the next cycle if it does not answer
        3. Send every pending request

        Returns {"status": "disabled" | "empty" | "unreachable" | "flushed", ...counts}
        """
        if not self.config.enable:
            return {"status": "disabled"}

        pending = self.queue.size()
        if pending == 0:
            return {"status": "empty"}

        self.metrics.record_cycle()
        if not await self.client.ping():
            self.metrics.record_ping_failure()
            return {"status": "unreachable", "pending": pending}

        logger.debug("kodi_queue_flush", size=pending)
        start = time.monotonic()
        stats = await self.queue.drain_all(self.client.request, on_failure=self._on_failure)
        self.metrics.record_flush(stats, (time.monotonic() - start) * 1000)

        logger.info("kodi_flush_complete", **stats)
        return {"status": "flushed", **stats}

    def _on_failure(self, item: QueuedNotification, error: Exception) -> None:
        self.metrics.record_error(f"{item.name}: {error}")

    async def health_check(self) -> dict[str, Any]:
        return {
            "enabled": self.config.enable,
            "running": self.running,
            "endpoint": self.config.json_rpc,
            "pending": self.size(),
            "pending_names": self.queue.names(),
            "metrics": self.metrics.to_dict(),
        }


def create_kodi_notifier(config: KodiConfig = None) -> KodiNotifier:
    """Factory function building a notifier from settings."""
    config = config or get_settings().kodi
    return KodiNotifier(config)
