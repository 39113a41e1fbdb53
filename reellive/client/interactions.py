"""
reellive.client.interactions
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

本地用户操作的 HTTP 客户端：送礼、评论、点赞。

流程为「持久化请求 → 成功后才产生实时事件」:

- 送礼：服务端持久化成功后自行广播 ``gift`` 信封，客户端只发 HTTP 请求
- 评论 / 点赞：HTTP 成功后，由客户端通过共享 Hub 连接发送 ``comment`` / ``like`` 信封

持久化失败抛出 ``InteractionError``，需要反馈给本地用户；不会发送任何实时事件。
"""
from __future__ import annotations

from typing import Any

import httpx

from reellive.client.catalog import GIFT_CATALOG
from reellive.client.connection import HubConnection
from reellive.core.config import settings
from reellive.core.logging import get_logger
from reellive.schemas.events import CommentEnvelope, GiftDescriptor, LikeEnvelope, Topic
from reellive.schemas.interactions import CommentRecord, GiftRecord

logger = get_logger(__name__)

_TOPIC_PATHS: dict[str, str] = {
    "video": "videos",
    "live_stream": "live-streams",
}


class InteractionError(Exception):
    """本地用户发起的操作失败（网络错误或服务端拒绝）。"""

    def __init__(self, action: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action
        self.status_code = status_code


class InteractionClient:
    """互动 REST 客户端。

    Args:
        connection: 共享 Hub 连接，用于评论 / 点赞成功后的实时通知。
        http: 可注入的 ``httpx.AsyncClient``（测试时可使用 MockTransport）。
    """

    def __init__(self, connection: HubConnection, http: httpx.AsyncClient | None = None) -> None:
        self.connection = connection
        self._http = http or httpx.AsyncClient(
            base_url=settings.API_BASE_URL,
            timeout=settings.HTTP_TIMEOUT,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, action: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._http.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.warning("%s 请求失败: %r", action, e)
            raise InteractionError(action, str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if response.status_code != 200 or body.get("code") != 200:
            message = body.get("msg") or response.reason_phrase
            raise InteractionError(action, message, status_code=response.status_code)
        return body["data"]

    async def send_gift(
        self,
        topic: Topic,
        gift: GiftDescriptor | str,
        sender_id: str,
        receiver_id: str,
    ) -> GiftRecord:
        """送出一个礼物。广播由服务端在持久化成功后完成。

        Args:
            gift: 礼物描述，或礼物目录中的 id（如 ``"rose"``）。

        Raises:
            InteractionError: 目录中没有该礼物，或请求失败。
        """
        if isinstance(gift, str):
            descriptor = GIFT_CATALOG.get(gift)
            if descriptor is None:
                raise InteractionError("gift", f"unknown gift {gift!r}")
            gift = descriptor
        data = await self._post(
            "gift",
            f"/api/{_TOPIC_PATHS[topic.kind]}/{topic.id}/gift",
            {
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "gift_type": gift.id,
                "amount": gift.amount,
                "rarity": gift.rarity,
                "emoji": gift.emoji,
                "name": gift.name,
            },
        )
        return GiftRecord.model_validate(data)

    async def post_comment(self, video_id: int, user_id: str, content: str) -> CommentRecord:
        """发表评论，成功后通知同一视频的其他观众。"""
        data = await self._post(
            "comment",
            f"/api/videos/{video_id}/comments",
            {"user_id": user_id, "content": content},
        )
        record = CommentRecord.model_validate(data)
        self.connection.send(
            CommentEnvelope.for_topic(Topic.video(video_id), data=record.model_dump(mode="json")),
        )
        return record

    async def toggle_like(self, video_id: int, user_id: str) -> bool:
        """切换点赞，成功后通知其他观众刷新点赞数。"""
        data = await self._post("like", f"/api/videos/{video_id}/like", {"user_id": user_id})
        self.connection.send(LikeEnvelope.for_topic(Topic.video(video_id)))
        return bool(data["liked"])
