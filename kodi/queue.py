"""
Notification Queue — keyed, deduplicated store of pending Kodi calls.

Producers add tasks under a caller-chosen name ("library-scan",
"refresh-movie-42", ...). A name that is already pending is not replaced.
The dispatcher drains the whole queue in one pass:

  ┌──────────┐  add   ┌──────────────────┐  snapshot  ┌───────────┐
  │ Producer │───────▶│ NotificationQueue │───────────▶│  drain    │──▶ Kodi
  └──────────┘        └────────▲─────────┘            └─────┬─────┘
                               │        requeue (retryable, │
                               └──────── attempts left) ────┘

The lock is held only while the mapping is copied or re-filled, never
while a request is on the wire.
"""
from __future__ import annotations

import asyncio
import structlog
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from kodi.rpc import JsonRpcRequest

logger = structlog.get_logger()

SendFn = Callable[[JsonRpcRequest], Awaitable[Any]]
FailureFn = Callable[["QueuedNotification", Exception], None]


@dataclass
class QueuedNotification:
    """A pending request plus its delivery bookkeeping."""
    name: str
    request: JsonRpcRequest
    attempt: int = 0
    created_at: str = ""
    last_error: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()


class NotificationQueue:
    """
    Pending notifications keyed by name.

    Failed sends are re-queued until `max_attempts` is reached; errors
    marked non-retryable drop the task straight away.
    """

    def __init__(self, max_attempts: int = 3):
        self.max_attempts = max_attempts
        self._pending: dict[str, QueuedNotification] = {}
        self._lock = asyncio.Lock()

    async def add(self, name: str, request: JsonRpcRequest) -> bool:
        """Queue `request` under `name`. Returns False if the name was already pending."""
        async with self._lock:
            if name in self._pending:
                return False
            self._pending[name] = QueuedNotification(name=name, request=request)
            return True

    def size(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def names(self) -> list[str]:
        return sorted(self._pending)

    def get(self, name: str) -> Optional[QueuedNotification]:
        return self._pending.get(name)

    async def drain_all(self, send_fn: SendFn, on_failure: FailureFn = None) -> dict[str, int]:
        """
        Send every pending notification once.

        Returns counts: {"pending", "sent", "failed", "requeued", "dropped", "superseded"}.
        If the drain is cancelled, notifications not yet sent go back in the queue.
        """
        async with self._lock:
            batch = list(self._pending.values())
            self._pending.clear()

        stats = {"pending": len(batch), "sent": 0, "failed": 0,
                 "requeued": 0, "dropped": 0, "superseded": 0}
        failed: list[tuple[QueuedNotification, bool]] = []
        done = 0

        try:
            for item in batch:
                try:
                    resp = await send_fn(item.request)
                    stats["sent"] += 1
                    logger.debug("kodi_notification_sent",
                                 name=item.name,
                                 method=item.request.method,
                                 response=_preview(resp))
                except Exception as e:
                    item.attempt += 1
                    item.last_error = str(e)
                    stats["failed"] += 1
                    failed.append((item, getattr(e, "retryable", True)))
                    logger.warning("kodi_notification_failed",
                                   name=item.name,
                                   method=item.request.method,
                                   attempt=item.attempt,
                                   error=str(e))
                    if on_failure:
                        on_failure(item, e)
                done += 1
        finally:
            await self._restore(failed, batch[done:], stats)

        return stats

    async def _restore(
        self,
        failed: list[tuple[QueuedNotification, bool]],
        unsent: list[QueuedNotification],
        stats: dict[str, int],
    ) -> None:
        if not failed and not unsent:
            return

        async with self._lock:
            for item in unsent:
                self._pending.setdefault(item.name, item)

            for item, retryable in failed:
                if not retryable or item.attempt >= self.max_attempts:
                    stats["dropped"] += 1
                    logger.error("kodi_notification_dropped",
                                 name=item.name,
                                 method=item.request.method,
                                 attempts=item.attempt,
                                 retryable=retryable,
                                 error=item.last_error)
                elif item.name in self._pending:
                    # re-enqueued while in flight; the newer request wins
                    stats["superseded"] += 1
                else:
                    self._pending[item.name] = item
                    stats["requeued"] += 1


def _preview(resp: Any, limit: int = 200) -> str:
    if isinstance(resp, (bytes, bytearray)):
        resp = resp.decode("utf-8", errors="replace")
    text = "" if resp is None else str(resp)
    return text if len(text) <= limit else text[:limit] + "..."
