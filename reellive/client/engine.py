"""
reellive.client.engine
~~~~~~~~~~~~~~~~~~~~~~

客户端反应引擎 —— 每个正在观看的内容项一个。

引擎持有一个 ``TimerRegistry`` 和三条流水线（礼物、同步反应、刷新信号），
挂载时向共享连接登记监听器，卸载时退订并一次性取消全部定时器。推荐以
上下文管理器使用::

    with ReactionEngine(Topic.video(42), connection) as engine:
        engine.reactions.trigger("fire")
"""
from __future__ import annotations

import random
from collections.abc import Callable
from typing import Any

from reellive.client.connection import HubConnection
from reellive.client.gift_pipeline import GiftPipeline
from reellive.client.invalidation import InvalidationPipeline, InvalidationSignal
from reellive.client.reaction_pipeline import SyncReactionPipeline
from reellive.client.timers import SchedulerLoop, TimerRegistry
from reellive.core.logging import get_logger
from reellive.schemas.events import Topic

logger = get_logger(__name__)


def _ignore_signal(signal: InvalidationSignal) -> None:
    pass


class ReactionEngine:
    """单个内容项的反应引擎。

    Args:
        topic: 内容项。
        connection: 进程级共享连接（引擎不会关闭它）。
        loop: 定时器使用的事件循环，默认为当前运行中的循环。
        rng: 礼物位置的随机源。
        on_invalidate: 点赞 / 评论 / 播放量刷新回调。
        include_views: 是否转发 ``view`` 刷新信号。
    """

    def __init__(
        self,
        topic: Topic,
        connection: HubConnection,
        *,
        loop: SchedulerLoop | None = None,
        rng: random.Random | None = None,
        on_invalidate: Callable[[InvalidationSignal], None] = _ignore_signal,
        include_views: bool = False,
    ) -> None:
        self.topic = topic
        self.connection = connection
        self._loop = loop
        self._rng = rng
        self._on_invalidate = on_invalidate
        self._include_views = include_views

        self.timers: TimerRegistry | None = None
        self.gifts: GiftPipeline | None = None
        self.reactions: SyncReactionPipeline | None = None
        self.invalidation: InvalidationPipeline | None = None

    @property
    def mounted(self) -> bool:
        return self.timers is not None

    def mount(self) -> ReactionEngine:
        """登记监听器并启动清扫定时器。

        Raises:
            RuntimeError: 重复挂载。
        """
        if self.mounted:
            raise RuntimeError(f"engine for {self.topic} is already mounted")
        self.connection.ensure_connected()
        self.timers = TimerRegistry(self._loop)
        self.gifts = GiftPipeline(self.topic, self.connection, self.timers, rng=self._rng)
        self.reactions = SyncReactionPipeline(self.topic, self.connection, self.timers)
        self.invalidation = InvalidationPipeline(
            self.topic,
            self.connection,
            self._on_invalidate,
            include_views=self._include_views,
        )
        logger.debug("引擎已挂载 | topic=%s", self.topic)
        return self

    def unmount(self) -> None:
        """退订全部监听器并取消全部定时器。可重复调用。"""
        if not self.mounted:
            return
        for pipeline in (self.gifts, self.reactions, self.invalidation):
            if pipeline is not None:
                pipeline.close()
        self.timers.close()
        self.timers = None
        self.gifts = None
        self.reactions = None
        self.invalidation = None
        logger.debug("引擎已卸载 | topic=%s", self.topic)

    def __enter__(self) -> ReactionEngine:
        return self.mount()

    def __exit__(self, *exc_info: Any) -> None:
        self.unmount()


class FeedViewport:
    """信息流视口：只为当前可见的内容项挂载引擎，划走时卸载。

    Args:
        connection: 共享连接。
        engine_factory: 创建引擎的工厂，参数为 ``(topic, connection)``。
    """

    def __init__(
        self,
        connection: HubConnection,
        engine_factory: Callable[[Topic, HubConnection], ReactionEngine] = ReactionEngine,
    ) -> None:
        self.connection = connection
        self._engine_factory = engine_factory
        self.current: ReactionEngine | None = None

    def focus(self, topic: Topic) -> ReactionEngine:
        """切换到 ``topic``；已经可见时返回现有引擎。"""
        if self.current is not None:
            if self.current.topic == topic:
                return self.current
            self.current.unmount()
        self.current = self._engine_factory(topic, self.connection).mount()
        return self.current

    def clear(self) -> None:
        """卸载当前引擎（例如离开信息流页面）。"""
        if self.current is not None:
            self.current.unmount()
            self.current = None
