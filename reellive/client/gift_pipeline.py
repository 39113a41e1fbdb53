"""
reellive.client.gift_pipeline
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

礼物动画流水线（每个内容项一个）。

把突发、无序的 ``gift`` 信封整理成有上限、有节奏的展示序列:

1. 收到礼物 → 生成 ``LiveGift``（随机位置）→ 更新连击 → 必要时触发礼物雨 → 进入等待队列
2. 出队：等待队列非空且展示中不足 ``GIFT_MAX_ACTIVE`` 个时，按 FIFO 提升为展示中，
   ``GIFT_DISPLAY_DURATION`` 秒后移除
3. 礼物雨：``legendary`` 礼物或连击达到阈值时，延迟追加一批合成礼物（不绕过上限，
   也不计入连击）
4. 清扫：周期性移除超龄礼物，即使单个移除定时器丢失也能保证展示集合有界
"""
from __future__ import annotations

import random
import uuid
from collections import deque

from pydantic import BaseModel, Field

from reellive.client import constants as c
from reellive.client.connection import HubConnection, Subscription
from reellive.client.timers import PeriodicCall, ScheduledCall, TimerRegistry
from reellive.core.logging import get_logger
from reellive.schemas.events import (
    Envelope,
    GiftDescriptor,
    GiftEnvelope,
    GiftEventData,
    GiftSender,
    Topic,
)

logger = get_logger(__name__)


class LiveGift(BaseModel):
    """客户端本地的一次礼物展示实例（id 与持久化记录无关）。"""

    id: str
    gift: GiftDescriptor
    sender: GiftSender
    x: float = Field(..., description="横向位置，占屏幕宽度的百分比")
    y: float = Field(..., description="纵向位置，占屏幕高度的百分比")
    created_at: float = Field(..., description="创建时间（注册表时钟，秒）")
    is_rain: bool = False


class GiftOverlayState(BaseModel):
    """渲染层读取的只读快照。"""

    active: list[LiveGift]
    ticker: list[LiveGift]
    pending_count: int
    combo_count: int
    rain_active: bool


class GiftPipeline:
    """礼物队列 + 连击 + 礼物雨 + 清扫。

    Args:
        topic: 当前观看的内容项，只处理该 topic 的礼物。
        connection: 共享 Hub 连接（只订阅，不关闭）。
        timers: 所属引擎的定时器注册表。
        rng: 随机源（位置），测试时可传入固定种子。
    """

    def __init__(
        self,
        topic: Topic,
        connection: HubConnection,
        timers: TimerRegistry,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.topic = topic
        self._timers = timers
        self._rng = rng or random.Random()

        self._pending: deque[LiveGift] = deque()
        self._active: list[LiveGift] = []
        self._removals: dict[str, ScheduledCall] = {}

        self.combo_count = 0
        self._last_gift_type: str | None = None
        self._combo_reset: ScheduledCall | None = None
        self._rains_in_flight = 0
        self.rain_count = 0

        self._subscription: Subscription = connection.subscribe(self.handle_envelope)
        self._sweeper: PeriodicCall = timers.call_every(c.GIFT_SWEEP_INTERVAL, self.sweep)

    # ── 只读视图 ──────────────────────────────────────────────────────

    @property
    def active(self) -> list[LiveGift]:
        return list(self._active)

    @property
    def pending(self) -> list[LiveGift]:
        return list(self._pending)

    @property
    def rain_active(self) -> bool:
        return self._rains_in_flight > 0

    def snapshot(self) -> GiftOverlayState:
        return GiftOverlayState(
            active=self.active,
            ticker=self._active[-c.NOTIFICATION_TICKER_SIZE:],
            pending_count=len(self._pending),
            combo_count=self.combo_count,
            rain_active=self.rain_active,
        )

    # ── 入站 ──────────────────────────────────────────────────────────

    def handle_envelope(self, envelope: Envelope) -> None:
        if isinstance(envelope, GiftEnvelope) and envelope.topic == self.topic:
            self.receive_gift(envelope.data)

    def receive_gift(self, data: GiftEventData) -> LiveGift:
        """处理一条礼物事件，返回生成的展示实例。"""
        gift = LiveGift(
            id=uuid.uuid4().hex,
            gift=data.gift,
            sender=data.sender,
            x=self._rng.uniform(*c.GIFT_X_RANGE),
            y=self._rng.uniform(*c.GIFT_Y_RANGE),
            created_at=self._timers.now(),
        )
        combo = self._register_combo(data.gift.id)
        if data.gift.rarity == "legendary" or combo >= c.COMBO_RAIN_THRESHOLD:
            self.trigger_rain(data.gift)

        self._pending.append(gift)
        self._drain()
        return gift

    # ── 连击 ──────────────────────────────────────────────────────────

    def _register_combo(self, gift_type: str) -> int:
        if gift_type == self._last_gift_type:
            self.combo_count += 1
        else:
            self.combo_count = 1
            self._last_gift_type = gift_type

        if self._combo_reset is not None:
            self._combo_reset.cancel()
        self._combo_reset = self._timers.call_later(c.COMBO_RESET_WINDOW, self._reset_combo)
        return self.combo_count

    def _reset_combo(self) -> None:
        self.combo_count = 0
        self._last_gift_type = None
        self._combo_reset = None

    # ── 礼物雨 ────────────────────────────────────────────────────────

    def trigger_rain(self, descriptor: GiftDescriptor) -> None:
        """触发一次礼物雨。多次触发允许重叠，生成的礼物在队列中交错。"""
        now = self._timers.now()
        drops = [
            LiveGift(
                id=f"rain-{uuid.uuid4().hex}",
                gift=descriptor,
                sender=GiftSender(username=c.RAIN_SENDER),
                x=self._rng.uniform(0.0, 100.0),
                y=c.RAIN_START_Y,
                created_at=now + i * c.RAIN_STAGGER,
                is_rain=True,
            )
            for i in range(c.RAIN_GIFT_COUNT)
        ]
        self.rain_count += 1
        self._rains_in_flight += 1
        logger.debug("礼物雨 | topic=%s | gift=%s", self.topic, descriptor.id)
        self._timers.call_later(c.RAIN_APPEND_DELAY, self._enqueue_rain, drops)
        self._timers.call_later(c.RAIN_ACTIVE_DURATION, self._end_rain)

    def _enqueue_rain(self, drops: list[LiveGift]) -> None:
        self._pending.extend(drops)
        self._drain()

    def _end_rain(self) -> None:
        self._rains_in_flight = max(0, self._rains_in_flight - 1)

    # ── 出队 / 移除 / 清扫 ────────────────────────────────────────────

    def _drain(self) -> None:
        while self._pending and len(self._active) < c.GIFT_MAX_ACTIVE:
            gift = self._pending.popleft()
            self._active.append(gift)
            self._removals[gift.id] = self._timers.call_later(
                c.GIFT_DISPLAY_DURATION, self._expire, gift.id,
            )

    def _expire(self, gift_id: str) -> None:
        self._removals.pop(gift_id, None)
        self._active = [g for g in self._active if g.id != gift_id]
        self._drain()

    def sweep(self) -> None:
        """移除到下一次清扫时会超过 ``GIFT_MAX_AGE`` 的礼物。"""
        cutoff = self._timers.now() - (c.GIFT_MAX_AGE - c.GIFT_SWEEP_INTERVAL)
        kept: list[LiveGift] = []
        for gift in self._active:
            if gift.created_at < cutoff:
                removal = self._removals.pop(gift.id, None)
                if removal is not None:
                    removal.cancel()
            else:
                kept.append(gift)
        if len(kept) != len(self._active):
            self._active = kept
            self._drain()

    def close(self) -> None:
        """退订 Hub。定时器由所属引擎统一取消。"""
        self._subscription.cancel()
        self._sweeper.cancel()
