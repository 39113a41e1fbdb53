"""
reellive.client.reaction_pipeline
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

同步反应流水线（每个内容项一个）。

本地观众可以向同一内容的所有观众广播五种固定反应之一，受冷却时间限制；
收到的反应按参与人数计算强度后展示固定时长。与礼物不同，这里没有并发上限：
每位观众的发送频率已被冷却限制住。
"""
from __future__ import annotations

import uuid

from pydantic import BaseModel

from reellive.client import constants as c
from reellive.client.catalog import REACTION_STYLES
from reellive.client.connection import HubConnection, Subscription
from reellive.client.timers import ScheduledCall, TimerRegistry
from reellive.core.logging import get_logger
from reellive.schemas.events import (
    Envelope,
    SyncReactionData,
    SyncReactionEnvelope,
    Topic,
    ViewerCountEnvelope,
)

logger = get_logger(__name__)


def reaction_intensity(participants: int) -> float:
    """强度 = min(参与人数 / 10, 5)。"""
    return min(participants / c.REACTION_INTENSITY_DIVISOR, c.REACTION_MAX_INTENSITY)


class SyncReaction(BaseModel):
    id: str
    type: str
    emoji: str
    color: str
    participants: int
    intensity: float
    created_at: float


class SyncReactionPipeline:
    """同步反应的发送（带冷却）与展示，以及在线人数。

    Attributes:
        viewer_count: 最近一次收到的在线人数，未收到时为 ``None``。
    """

    def __init__(self, topic: Topic, connection: HubConnection, timers: TimerRegistry) -> None:
        self.topic = topic
        self._connection = connection
        self._timers = timers
        self._active: list[SyncReaction] = []
        self._cooldown: ScheduledCall | None = None
        self.viewer_count: int | None = None
        self._subscription: Subscription = connection.subscribe(self.handle_envelope)

    @property
    def active(self) -> list[SyncReaction]:
        return list(self._active)

    @property
    def cooling_down(self) -> bool:
        return self._cooldown is not None

    # ── 发送 ──────────────────────────────────────────────────────────

    def trigger(self, reaction_type: str) -> bool:
        """广播一次同步反应。

        冷却期内或反应类型未知时不做任何事。

        Returns:
            是否发出了反应（断线时消息会被连接层丢弃，但冷却照常开始）。
        """
        if self._cooldown is not None:
            return False
        style = REACTION_STYLES.get(reaction_type)
        if style is None:
            logger.debug("未知反应类型: %s", reaction_type)
            return False

        self._cooldown = self._timers.call_later(c.REACTION_COOLDOWN, self._end_cooldown)
        envelope = SyncReactionEnvelope.for_topic(
            self.topic,
            data=SyncReactionData(
                type=reaction_type,
                emoji=style.emoji,
                color=style.color,
                participants=1,  # 由服务端聚合
            ),
        )
        self._connection.send(envelope)
        return True

    def _end_cooldown(self) -> None:
        self._cooldown = None

    # ── 入站 ──────────────────────────────────────────────────────────

    def handle_envelope(self, envelope: Envelope) -> None:
        if envelope.topic != self.topic:
            return
        if isinstance(envelope, SyncReactionEnvelope):
            self.receive_reaction(envelope.data)
        elif isinstance(envelope, ViewerCountEnvelope):
            self.viewer_count = envelope.data.count

    def receive_reaction(self, data: SyncReactionData) -> SyncReaction | None:
        """展示一条收到的反应；未知类型直接丢弃，缺失的 emoji / 颜色按样式表补齐。"""
        style = REACTION_STYLES.get(data.type)
        if style is None:
            logger.debug("丢弃未知反应类型: %s", data.type)
            return None
        reaction = SyncReaction(
            id=uuid.uuid4().hex,
            type=data.type,
            emoji=data.emoji or style.emoji,
            color=data.color or style.color,
            participants=data.participants,
            intensity=reaction_intensity(data.participants),
            created_at=self._timers.now(),
        )
        self._active.append(reaction)
        self._timers.call_later(c.REACTION_DISPLAY_DURATION, self._expire, reaction.id)
        return reaction

    def _expire(self, reaction_id: str) -> None:
        self._active = [r for r in self._active if r.id != reaction_id]

    def close(self) -> None:
        self._subscription.cancel()
