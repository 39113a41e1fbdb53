"""
tests.test_connection
~~~~~~~~~~~~~~~~~~~~~

HubConnection：多订阅者分发、退订、断线丢弃发送、退避重连上限。
"""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from reellive.client.connection import ConnectionState, HubConnection
from reellive.schemas.events import LikeEnvelope, Topic


class FakeSocket:
    """可异步迭代的假 WebSocket：依次吐出预置消息后正常关闭。"""

    def __init__(self, messages: list[str]) -> None:
        self._messages = list(messages)
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        if not self._messages:
            raise StopAsyncIteration
        await asyncio.sleep(0)
        return self._messages.pop(0)


def like(video_id: int = 1) -> str:
    return json.dumps({"type": "like", "videoId": video_id})


class TestDispatch:
    """测试入站分发与订阅。"""

    def test_every_listener_receives_every_envelope(self) -> None:
        conn = HubConnection("ws://test/ws")
        seen_a: list = []
        seen_b: list = []
        conn.subscribe(seen_a.append)
        conn.subscribe(seen_b.append)

        conn.dispatch(like(1))
        conn.dispatch(like(2))

        assert [e.topic for e in seen_a] == [Topic.video(1), Topic.video(2)]
        assert len(seen_b) == 2

    def test_cancelled_subscription_stops_delivery(self) -> None:
        conn = HubConnection("ws://test/ws")
        seen: list = []
        subscription = conn.subscribe(seen.append)

        subscription.cancel()
        subscription.cancel()
        conn.dispatch(like())

        assert seen == []
        assert conn.listener_count == 0

    def test_subscription_as_context_manager(self) -> None:
        conn = HubConnection("ws://test/ws")
        with conn.subscribe(lambda e: None):
            assert conn.listener_count == 1
        assert conn.listener_count == 0

    def test_malformed_message_is_dropped(self) -> None:
        conn = HubConnection("ws://test/ws")
        seen: list = []
        conn.subscribe(seen.append)

        conn.dispatch("not json at all")

        assert seen == []

    def test_faulty_listener_is_isolated(self) -> None:
        """一个监听器出错不影响其它监听器。"""
        conn = HubConnection("ws://test/ws")
        seen: list = []

        def broken(envelope) -> None:
            raise ValueError("bug in pipeline")

        conn.subscribe(broken)
        conn.subscribe(seen.append)
        conn.dispatch(like())

        assert len(seen) == 1


class TestSend:
    """测试出站发送。"""

    def test_send_while_disconnected_is_dropped(self) -> None:
        conn = HubConnection("ws://test/ws")

        assert conn.state is ConnectionState.DISCONNECTED
        assert conn.send(LikeEnvelope.for_topic(Topic.video(1))) is False

    @pytest.mark.asyncio
    async def test_send_while_connected(self) -> None:
        conn = HubConnection("ws://test/ws")
        ws = FakeSocket([])
        conn._ws = ws
        conn.state = ConnectionState.CONNECTED

        assert conn.send(LikeEnvelope.for_topic(Topic.video(3))) is True
        await asyncio.sleep(0)

        sent = json.loads(ws.send.call_args[0][0])
        assert sent["type"] == "like"
        assert sent["videoId"] == 3


class TestLifecycle:
    """测试连接循环与退避重连。"""

    @pytest.mark.asyncio
    async def test_messages_are_dispatched_then_reconnect_gives_up(self) -> None:
        """连接成功后分发消息；之后每次连接都失败，达到上限后停止。"""
        attempts: list[str] = []
        seen: list = []

        @asynccontextmanager
        async def fake_connect(url: str):
            attempts.append(url)
            if len(attempts) > 1:
                raise OSError("connection refused")
            yield FakeSocket([like(1), like(2)])

        conn = HubConnection("ws://test/ws", base_delay=0.0, max_attempts=3, connect=fake_connect)
        conn.subscribe(seen.append)

        conn.start()
        await asyncio.wait_for(conn.wait_stopped(), timeout=1.0)

        assert len(seen) == 2
        # 1 次成功 + 3 次重连
        assert len(attempts) == 4
        assert conn.state is ConnectionState.DISCONNECTED
        assert not conn.is_running

    def test_backoff_doubles(self) -> None:
        conn = HubConnection("ws://test/ws", base_delay=1.0, max_attempts=5)

        delays = [conn._next_delay() for _ in range(6)]

        assert delays == [2.0, 4.0, 8.0, 16.0, 32.0, None]

    @pytest.mark.asyncio
    async def test_ensure_connected_restarts_after_giving_up(self) -> None:
        """重连放弃后，重新挂载组件会重置计数并再次连接。"""
        attempts: list[str] = []

        @asynccontextmanager
        async def failing_connect(url: str):
            attempts.append(url)
            raise OSError("down")
            yield  # pragma: no cover

        conn = HubConnection("ws://test/ws", base_delay=0.0, max_attempts=1, connect=failing_connect)
        conn.start()
        await asyncio.wait_for(conn.wait_stopped(), timeout=1.0)
        assert len(attempts) == 2

        conn.ensure_connected()
        await asyncio.wait_for(conn.wait_stopped(), timeout=1.0)
        assert len(attempts) == 4

    @pytest.mark.asyncio
    async def test_close_stops_reconnecting(self) -> None:
        @asynccontextmanager
        async def failing_connect(url: str):
            raise OSError("down")
            yield  # pragma: no cover

        conn = HubConnection("ws://test/ws", base_delay=10.0, max_attempts=5, connect=failing_connect)
        conn.subscribe(lambda e: None)
        conn.start()
        await asyncio.sleep(0.01)

        await conn.close()

        assert not conn.is_running
        assert conn.listener_count == 0
        conn.ensure_connected()
        assert not conn.is_running
