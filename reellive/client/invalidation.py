"""
reellive.client.invalidation
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

``like`` / ``comment`` / ``view`` 信封不携带需要展示的状态，只通知
依赖的读状态（点赞数、评论列表、播放量）重新拉取。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel

from reellive.client.connection import HubConnection, Subscription
from reellive.schemas.events import CommentEnvelope, Envelope, LikeEnvelope, Topic, ViewEnvelope

Resource = Literal["likes", "comments", "views"]


class InvalidationSignal(BaseModel):
    topic: Topic
    resource: Resource


class InvalidationPipeline:
    """把互动信封转换为刷新信号。

    Args:
        topic: 当前观看的内容项。
        connection: 共享 Hub 连接。
        on_invalidate: 收到信号时的回调。
        include_views: 是否转发 ``view`` 信封（默认忽略）。
    """

    def __init__(
        self,
        topic: Topic,
        connection: HubConnection,
        on_invalidate: Callable[[InvalidationSignal], None],
        *,
        include_views: bool = False,
    ) -> None:
        self.topic = topic
        self._on_invalidate = on_invalidate
        self._include_views = include_views
        self._subscription: Subscription = connection.subscribe(self.handle_envelope)

    def handle_envelope(self, envelope: Envelope) -> None:
        if envelope.topic != self.topic:
            return
        resource: Resource | None = None
        if isinstance(envelope, LikeEnvelope):
            resource = "likes"
        elif isinstance(envelope, CommentEnvelope):
            resource = "comments"
        elif isinstance(envelope, ViewEnvelope) and self._include_views:
            resource = "views"
        if resource is not None:
            self._on_invalidate(InvalidationSignal(topic=self.topic, resource=resource))

    def close(self) -> None:
        self._subscription.cancel()
