"""
Tests for the notification queue.

Coverage:
  Add:     dedup (first request wins), concurrent producers
  Drain:   send-once, removal, retry bookkeeping, drop after max attempts,
           non-retryable drops, supersede on re-enqueue, cancellation,
           lock released while a request is in flight
"""
import asyncio
import pytest
from unittest.mock import AsyncMock

from kodi.queue import NotificationQueue, QueuedNotification
from kodi.rpc import JsonRpcRequest, KodiStatusError, KodiTransportError


def scan(directory=""):
    return JsonRpcRequest(method="VideoLibrary.Scan", params={"directory": directory})


# ══════════════════════════════════════════════════════════════
#  Add
# ══════════════════════════════════════════════════════════════

class TestAdd:
    @pytest.mark.asyncio
    async def test_add_new_name(self):
        q = NotificationQueue()
        assert await q.add("library-scan", scan()) is True
        assert q.size() == 1
        assert len(q) == 1

    @pytest.mark.asyncio
    async def test_duplicate_name_keeps_first_request(self):
        q = NotificationQueue()
        first, second = scan("/movies"), scan("/tv")
        assert await q.add("library-scan", first) is True
        assert await q.add("library-scan", second) is False
        assert q.size() == 1
        assert q.get("library-scan").request is first

    @pytest.mark.asyncio
    async def test_add_does_not_assign_id(self):
        q = NotificationQueue()
        req = scan()
        await q.add("library-scan", req)
        assert req.id == ""
        assert req.jsonrpc == ""

    @pytest.mark.asyncio
    async def test_concurrent_distinct_names(self):
        q = NotificationQueue()
        results = await asyncio.gather(*[
            q.add(f"refresh-movie-{i}", JsonRpcRequest(method="VideoLibrary.RefreshMovie",
                                                       params={"movieid": i}))
            for i in range(100)
        ])
        assert all(results)
        assert q.size() == 100
        assert q.names() == sorted(f"refresh-movie-{i}" for i in range(100))

    def test_queued_notification_defaults(self):
        item = QueuedNotification(name="library-scan", request=scan())
        assert item.attempt == 0
        assert item.created_at
        assert item.last_error == ""


# ══════════════════════════════════════════════════════════════
#  Drain
# ══════════════════════════════════════════════════════════════

class TestDrain:
    @pytest.mark.asyncio
    async def test_drain_sends_each_once_and_empties(self):
        q = NotificationQueue()
        await q.add("library-scan", scan())
        await q.add("library-clean", JsonRpcRequest(method="VideoLibrary.Clean"))
        send = AsyncMock(return_value=b'{"result":"OK"}')

        stats = await q.drain_all(send)

        assert send.await_count == 2
        sent_methods = sorted(call.args[0].method for call in send.await_args_list)
        assert sent_methods == ["VideoLibrary.Clean", "VideoLibrary.Scan"]
        assert q.size() == 0
        assert stats == {"pending": 2, "sent": 2, "failed": 0,
                         "requeued": 0, "dropped": 0, "superseded": 0}

    @pytest.mark.asyncio
    async def test_drain_empty_queue(self):
        q = NotificationQueue()
        send = AsyncMock()
        stats = await q.drain_all(send)
        send.assert_not_awaited()
        assert stats["pending"] == 0

    @pytest.mark.asyncio
    async def test_failure_requeues_and_continues(self):
        q = NotificationQueue(max_attempts=3)
        await q.add("a", JsonRpcRequest(method="A"))
        await q.add("b", JsonRpcRequest(method="B"))

        async def send(req):
            if req.method == "A":
                raise KodiTransportError("connect timeout", req.method)
            return b"ok"

        stats = await q.drain_all(send)

        assert stats["sent"] == 1
        assert stats["failed"] == 1
        assert stats["requeued"] == 1
        assert q.names() == ["a"]
        item = q.get("a")
        assert item.attempt == 1
        assert "connect timeout" in item.last_error

    @pytest.mark.asyncio
    async def test_dropped_after_max_attempts(self):
        q = NotificationQueue(max_attempts=2)
        await q.add("a", JsonRpcRequest(method="A"))
        send = AsyncMock(side_effect=KodiStatusError(503, "Service Unavailable", "A"))

        first = await q.drain_all(send)
        assert first["requeued"] == 1
        assert q.size() == 1

        second = await q.drain_all(send)
        assert second["dropped"] == 1
        assert q.size() == 0

    @pytest.mark.asyncio
    async def test_non_retryable_dropped_immediately(self):
        q = NotificationQueue(max_attempts=5)
        await q.add("a", JsonRpcRequest(method="A"))
        send = AsyncMock(side_effect=KodiStatusError(400, "Bad Request", "A"))

        stats = await q.drain_all(send)

        assert stats["dropped"] == 1
        assert q.size() == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_retryable(self):
        q = NotificationQueue(max_attempts=3)
        await q.add("a", JsonRpcRequest(method="A"))
        send = AsyncMock(side_effect=ValueError("boom"))

        stats = await q.drain_all(send)

        assert stats["requeued"] == 1
        assert q.size() == 1

    @pytest.mark.asyncio
    async def test_on_failure_callback(self):
        q = NotificationQueue()
        await q.add("a", JsonRpcRequest(method="A"))
        seen = []
        send = AsyncMock(side_effect=KodiTransportError("down", "A"))

        await q.drain_all(send, on_failure=lambda item, err: seen.append((item.name, str(err))))

        assert seen == [("a", "down")]

    @pytest.mark.asyncio
    async def test_reenqueue_during_flight_supersedes_failed(self):
        q = NotificationQueue()
        await q.add("library-scan", scan("/old"))
        newer = scan("/new")

        async def send(req):
            await q.add("library-scan", newer)
            raise KodiTransportError("down", req.method)

        stats = await q.drain_all(send)

        assert stats["superseded"] == 1
        assert q.get("library-scan").request is newer
        assert q.get("library-scan").attempt == 0

    @pytest.mark.asyncio
    async def test_add_not_blocked_while_sending(self):
        q = NotificationQueue()
        await q.add("a", JsonRpcRequest(method="A"))
        added = []

        async def send(req):
            added.append(await asyncio.wait_for(q.add("b", JsonRpcRequest(method="B")), timeout=1))
            return b"ok"

        await q.drain_all(send)

        assert added == [True]
        assert q.names() == ["b"]

    @pytest.mark.asyncio
    async def test_cancelled_drain_restores_unsent(self):
        q = NotificationQueue()
        await q.add("a", JsonRpcRequest(method="A"))
        await q.add("b", JsonRpcRequest(method="B"))
        in_flight = asyncio.Event()

        async def send(req):
            in_flight.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(q.drain_all(send))
        await in_flight.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert q.names() == ["a", "b"]
