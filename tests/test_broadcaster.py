"""Tests for dess.reactive.broadcaster: the live reload channel."""

from __future__ import annotations

import asyncio
import json

import pytest

from dess._errors import SocketSendError
from dess.reactive.broadcaster import (
    REFRESH,
    LiveReloadChannel,
    ReloadConnection,
    encode_message,
)


class ClosingConnection(ReloadConnection):
    """Connection that closes while a broadcast is sending to it."""

    __slots__ = ()

    def send(self, payload: str) -> None:
        self.close()
        super().send(payload)


# ---------------------------------------------------------------------------
# ReloadConnection
# ---------------------------------------------------------------------------


class TestReloadConnection:
    """Queueing, closing and draining a single connection."""

    def test_send_queues(self) -> None:
        conn = ReloadConnection("a")
        conn.send("x")
        assert conn.pending == 1

    def test_send_after_close_raises(self) -> None:
        conn = ReloadConnection("a")
        conn.close()
        with pytest.raises(SocketSendError, match="closed"):
            conn.send("x")

    def test_full_queue_raises(self) -> None:
        conn = ReloadConnection("a", maxsize=1)
        conn.send("x")
        with pytest.raises(SocketSendError, match="not draining"):
            conn.send("y")

    def test_close_callbacks_run_once(self) -> None:
        conn = ReloadConnection("a")
        calls: list[ReloadConnection] = []
        conn.on_close(calls.append)
        conn.close()
        conn.close()
        assert calls == [conn]

    def test_on_close_after_close_runs_immediately(self) -> None:
        conn = ReloadConnection("a")
        conn.close()
        calls: list[ReloadConnection] = []
        conn.on_close(calls.append)
        assert calls == [conn]

    def test_generated_client_id(self) -> None:
        assert ReloadConnection().client_id != ReloadConnection().client_id

    def test_repr(self) -> None:
        conn = ReloadConnection("abc")
        assert repr(conn) == "ReloadConnection('abc', open)"
        conn.close()
        assert repr(conn) == "ReloadConnection('abc', closed)"

    @pytest.mark.asyncio
    async def test_messages_drain_until_close(self) -> None:
        conn = ReloadConnection("a")
        conn.send("one")
        conn.send("two")

        received: list[str] = []

        async def consume() -> None:
            async for payload in conn.messages():
                received.append(payload)
                if len(received) == 2:
                    conn.close()

        await asyncio.wait_for(consume(), timeout=2)
        assert received == ["one", "two"]
        assert conn.closed

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self) -> None:
        conn = ReloadConnection("a")
        received: list[str] = []

        async def consume() -> None:
            async for payload in conn.messages():
                received.append(payload)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        conn.close()
        await asyncio.wait_for(task, timeout=2)
        assert received == []

    @pytest.mark.asyncio
    async def test_cancelled_consumer_closes_connection(self) -> None:
        conn = ReloadConnection("a")

        async def consume() -> None:
            async for _ in conn.messages():
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        assert conn.closed


# ---------------------------------------------------------------------------
# LiveReloadChannel
# ---------------------------------------------------------------------------


class TestLiveReloadChannel:
    """Membership and fan-out."""

    def test_encode_refresh(self) -> None:
        assert encode_message(REFRESH) == '{"type":"refresh"}'
        assert json.loads(encode_message(REFRESH)) == {"type": "refresh"}

    def test_subscribe_and_auto_remove(self) -> None:
        channel = LiveReloadChannel()
        conn = ReloadConnection("a")
        channel.subscribe(conn)
        assert channel.subscriber_count == 1
        conn.close()
        assert channel.subscriber_count == 0

    def test_closed_connection_not_subscribed(self) -> None:
        channel = LiveReloadChannel()
        conn = ReloadConnection("a")
        conn.close()
        channel.subscribe(conn)
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_each_subscriber_gets_one_refresh(self) -> None:
        channel = LiveReloadChannel()
        a, b = ReloadConnection("a"), ReloadConnection("b")
        channel.subscribe(a)
        channel.subscribe(b)

        assert await channel.broadcast() == 2
        for conn in (a, b):
            assert conn.pending == 1

        stream = a.messages()
        payload = await anext(stream)
        await stream.aclose()
        assert payload == '{"type":"refresh"}'

    @pytest.mark.asyncio
    async def test_broadcast_with_no_subscribers(self) -> None:
        assert await LiveReloadChannel().broadcast() == 0

    @pytest.mark.asyncio
    async def test_connection_closing_mid_broadcast_is_skipped(self) -> None:
        channel = LiveReloadChannel()
        flaky = ClosingConnection("flaky")
        steady = ReloadConnection("steady")
        channel.subscribe(flaky)
        channel.subscribe(steady)

        assert await channel.broadcast() == 1
        assert steady.pending == 1
        assert flaky.closed
        assert channel.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_stalled_connection_dropped(self) -> None:
        channel = LiveReloadChannel()
        stalled = ReloadConnection("stalled", maxsize=1)
        healthy = ReloadConnection("healthy")
        channel.subscribe(stalled)
        channel.subscribe(healthy)

        assert await channel.broadcast() == 2
        assert await channel.broadcast() == 1
        assert stalled.closed
        assert channel.snapshot() == frozenset({healthy})
        assert healthy.pending == 2

    @pytest.mark.asyncio
    async def test_custom_message(self) -> None:
        channel = LiveReloadChannel()
        conn = ReloadConnection("a")
        channel.subscribe(conn)
        await channel.broadcast({"type": "error", "message": "bad"})
        stream = conn.messages()
        payload = await anext(stream)
        await stream.aclose()
        assert json.loads(payload) == {"type": "error", "message": "bad"}

    def test_close_all(self) -> None:
        channel = LiveReloadChannel()
        conns = [ReloadConnection(str(i)) for i in range(3)]
        for conn in conns:
            channel.subscribe(conn)
        channel.close_all()
        assert channel.subscriber_count == 0
        assert all(conn.closed for conn in conns)
