"""
tests.test_timers
~~~~~~~~~~~~~~~~~

TimerRegistry：登记、取消、周期回调与一次性关闭。
"""
from __future__ import annotations

import pytest

from reellive.client.timers import TimerRegistry


class TestTimerRegistry:
    """测试定时器注册表。"""

    def test_call_later_fires_once(self, loop) -> None:
        registry = TimerRegistry(loop)
        fired: list[str] = []

        registry.call_later(1.0, fired.append, "a")
        loop.advance(0.5)
        assert fired == []

        loop.advance(0.5)
        assert fired == ["a"]
        assert registry.pending_count == 0

    def test_cancel(self, loop) -> None:
        registry = TimerRegistry(loop)
        fired: list[str] = []

        call = registry.call_later(1.0, fired.append, "a")
        call.cancel()
        loop.advance(2.0)

        assert fired == []
        assert registry.pending_count == 0

    def test_call_every(self, loop) -> None:
        """周期回调按间隔重复执行，取消后停止。"""
        registry = TimerRegistry(loop)
        ticks: list[float] = []

        periodic = registry.call_every(1.0, lambda: ticks.append(registry.now()))
        loop.advance(3.0)
        assert len(ticks) == 3

        periodic.cancel()
        loop.advance(3.0)
        assert len(ticks) == 3

    def test_close_cancels_everything(self, loop) -> None:
        """close() 一次性取消全部回调，之后拒绝新的登记。"""
        registry = TimerRegistry(loop)
        fired: list[str] = []
        registry.call_later(1.0, fired.append, "one-shot")
        registry.call_every(0.5, lambda: fired.append("tick"))

        registry.close()
        loop.advance(5.0)

        assert fired == []
        assert loop.scheduled_count == 0
        with pytest.raises(RuntimeError):
            registry.call_later(1.0, fired.append, "late")
