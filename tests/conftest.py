"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 手动推进的时钟循环、假 Hub 连接，
使流水线测试完全确定、无需真实网络或等待。
"""
from __future__ import annotations

import heapq
import itertools
import json
import os
import random
from collections.abc import Callable
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")

from reellive.client.connection import Subscription  # noqa: E402
from reellive.schemas.events import Envelope, IgnoredEvent, parse_envelope  # noqa: E402


# ── 手动时钟 ──────────────────────────────────────────────────────────

class _ManualHandle:
    def __init__(self, callback: Callable[..., Any], args: tuple) -> None:
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualLoop:
    """实现 ``time()`` / ``call_later()`` 的假事件循环，由测试调用 ``advance()`` 推进。"""

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _ManualHandle:
        handle = _ManualHandle(callback, args)
        heapq.heappush(self._queue, (self._now + delay, next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> None:
        """推进时钟，按时间顺序执行到期的回调（含推进过程中新登记的）。"""
        target = self._now + seconds + 1e-9
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback(*handle.args)
        self._now = target

    @property
    def scheduled_count(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)


# ── 假 Hub 连接 ───────────────────────────────────────────────────────

class FakeConnection:
    """与 ``HubConnection`` 同形的内存连接：记录发送、手动注入入站消息。"""

    def __init__(self) -> None:
        self.sent: list[Envelope] = []
        self._listeners: dict[int, Subscription] = {}
        self.ensure_connected_calls = 0

    def subscribe(self, listener: Callable[[Envelope], None]) -> Subscription:
        subscription = Subscription(self, listener)  # type: ignore[arg-type]
        self._listeners[id(subscription)] = subscription
        return subscription

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def ensure_connected(self) -> None:
        self.ensure_connected_calls += 1

    def send(self, envelope: Envelope) -> bool:
        self.sent.append(envelope)
        return True

    def emit(self, message: dict | str) -> None:
        """注入一条入站消息（dict 会先序列化为 JSON）。"""
        raw = message if isinstance(message, str) else json.dumps(message)
        envelope = parse_envelope(raw)
        if isinstance(envelope, IgnoredEvent):
            return
        for subscription in list(self._listeners.values()):
            if subscription.active:
                subscription.listener(envelope)  # type: ignore[arg-type]


@pytest.fixture()
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture()
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


def build_gift_message(
    gift_id: str = "rose",
    rarity: str | None = "common",
    video_id: int = 1,
    username: str = "alice",
) -> dict:
    """构造一条 ``gift`` 线上消息。"""
    gift: dict[str, Any] = {"id": gift_id, "emoji": "🌹", "name": gift_id.title(), "amount": 1}
    if rarity is not None:
        gift["rarity"] = rarity
    return {
        "type": "gift",
        "videoId": video_id,
        "data": {"gift": gift, "sender": {"username": username}},
        "timestamp": "2024-05-01T12:00:00Z",
    }


@pytest.fixture()
def gift_message() -> Callable[..., dict]:
    return build_gift_message
