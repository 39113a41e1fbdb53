"""
reellive.client.timers
~~~~~~~~~~~~~~~~~~~~~~

每个反应引擎一个的定时器注册表。

引擎内所有延时回调（礼物移除、连击重置、冷却、清扫）都通过同一个
``TimerRegistry`` 注册，卸载时 ``close()`` 一次性取消全部，避免回调在
已卸载的状态上触发。
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol


class SchedulerLoop(Protocol):
    """``asyncio`` 事件循环中注册表用到的最小接口。"""

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any: ...


class ScheduledCall:
    """一次已登记的延时调用，可以取消。"""

    def __init__(self, registry: TimerRegistry, callback: Callable[..., Any], args: tuple) -> None:
        self._registry = registry
        self._callback = callback
        self._args = args
        self._handle: Any = None
        self.cancelled = False
        self.fired = False

    def _run(self) -> None:
        self._registry._pending.discard(self)
        if self.cancelled:
            return
        self.fired = True
        self._callback(*self._args)

    def cancel(self) -> None:
        if self.cancelled or self.fired:
            return
        self.cancelled = True
        self._registry._pending.discard(self)
        if self._handle is not None:
            self._handle.cancel()


class PeriodicCall:
    """固定间隔重复执行的回调，每次触发后重新登记下一次。"""

    def __init__(self, registry: TimerRegistry, interval: float, callback: Callable[[], Any]) -> None:
        self._registry = registry
        self._interval = interval
        self._callback = callback
        self._next: ScheduledCall | None = None
        self.cancelled = False

    def _arm(self) -> None:
        self._next = self._registry.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        if self.cancelled:
            return
        self._arm()
        self._callback()

    def cancel(self) -> None:
        self.cancelled = True
        if self._next is not None:
            self._next.cancel()


class TimerRegistry:
    """延时回调注册表。

    Args:
        loop: 提供 ``time()`` / ``call_later()`` 的事件循环，默认为当前运行中的循环。
    """

    def __init__(self, loop: SchedulerLoop | None = None) -> None:
        self._loop: SchedulerLoop = loop or asyncio.get_running_loop()
        self._pending: set[ScheduledCall] = set()
        self.closed = False

    def now(self) -> float:
        """单调时钟（秒）。"""
        return self._loop.time()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        """``delay`` 秒后执行 ``callback(*args)``。

        Raises:
            RuntimeError: 注册表已关闭。
        """
        if self.closed:
            raise RuntimeError("timer registry is closed")
        call = ScheduledCall(self, callback, args)
        call._handle = self._loop.call_later(delay, call._run)
        self._pending.add(call)
        return call

    def call_every(self, interval: float, callback: Callable[[], Any]) -> PeriodicCall:
        """每隔 ``interval`` 秒执行一次 ``callback``，直到取消或注册表关闭。"""
        periodic = PeriodicCall(self, interval, callback)
        periodic._arm()
        return periodic

    def close(self) -> None:
        """取消所有未触发的回调，之后不再接受新的登记。"""
        self.closed = True
        for call in list(self._pending):
            call.cancel()
        self._pending.clear()
