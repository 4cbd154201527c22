"""Dispatch counters for the Kodi notifier."""
from __future__ import annotations

from typing import Any


class DispatchMetrics:
    """Tracks cycle, ping, send, retry and drop counts plus flush latency."""

    def __init__(self):
        self.cycles: int = 0
        self.flushes: int = 0
        self.pings_failed: int = 0
        self.sent: int = 0
        self.failed: int = 0
        self.requeued: int = 0
        self.dropped: int = 0
        self.superseded: int = 0
        self._latencies: list[float] = []
        self._errors: list[str] = []

    def record_cycle(self):
        self.cycles += 1

    def record_ping_failure(self):
        self.pings_failed += 1

    def record_flush(self, stats: dict[str, int], latency_ms: float = 0.0):
        self.flushes += 1
        self.sent += stats.get("sent", 0)
        self.failed += stats.get("failed", 0)
        self.requeued += stats.get("requeued", 0)
        self.dropped += stats.get("dropped", 0)
        self.superseded += stats.get("superseded", 0)
        if latency_ms > 0:
            self._latencies.append(latency_ms)
            del self._latencies[:-100]

    def record_error(self, error: str):
        if error:
            self._errors.append(error)
            del self._errors[:-10]

    @property
    def avg_flush_latency_ms(self) -> float:
        return sum(self._latencies) / len(self._latencies) if self._latencies else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles": self.cycles,
            "flushes": self.flushes,
            "pings_failed": self.pings_failed,
            "sent": self.sent,
            "failed": self.failed,
            "requeued": self.requeued,
            "dropped": self.dropped,
            "superseded": self.superseded,
            "avg_flush_latency_ms": round(self.avg_flush_latency_ms, 1),
            "recent_errors": list(self._errors),
        }
