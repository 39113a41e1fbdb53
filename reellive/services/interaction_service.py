"""
reellive.services.interaction_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

互动业务服务 —— 先持久化，成功后再广播。

送礼必须先写入存储（含 ``gifts_count`` 计数）才会构造 ``gift`` 信封并交给
Event Hub 广播，保证被广播的礼物一定对应一条已落库的记录。持久化失败时
抛出 ``PersistenceError``，不会广播。
"""
from __future__ import annotations

from reellive.core.logging import get_logger
from reellive.db.interaction_repository import InteractionRepository
from reellive.schemas.events import (
    GiftDescriptor,
    GiftEnvelope,
    GiftEventData,
    GiftSender,
    Topic,
    ViewEnvelope,
)
from reellive.schemas.interactions import (
    CommentRecord,
    CommentRequest,
    GiftRecord,
    GiftRequest,
)
from reellive.services.event_hub import EventHub

logger = get_logger(__name__)


class PersistenceError(Exception):
    """协作存储写入失败。只会反馈给发起操作的客户端。"""

    def __init__(self, action: str, cause: Exception) -> None:
        super().__init__(f"{action} failed: {cause}")
        self.action = action
        self.cause = cause


class InteractionService:
    """送礼 / 评论 / 点赞 / 播放量的业务编排。

    Attributes:
        repo: 互动数据仓库。
        hub: 进程级 Event Hub。
    """

    def __init__(self, repo: InteractionRepository, hub: EventHub) -> None:
        self.repo = repo
        self.hub = hub

    async def send_gift(self, topic: Topic, request: GiftRequest) -> GiftRecord:
        """持久化礼物并广播 ``gift`` 信封。

        Raises:
            PersistenceError: 写入存储失败（此时不会广播）。
        """
        try:
            record = await self.repo.create_gift(
                sender_id=request.sender_id,
                receiver_id=request.receiver_id,
                topic=topic,
                gift_type=request.gift_type,
                amount=request.amount,
                rarity=request.rarity,
                emoji=request.emoji,
                name=request.name,
            )
        except Exception as e:
            logger.error("礼物持久化失败 | topic=%s | %s", topic, e, exc_info=True)
            raise PersistenceError("gift", e) from e

        sender = await self._sender_info(request.sender_id)
        envelope = GiftEnvelope.for_topic(
            topic,
            data=GiftEventData(
                gift=GiftDescriptor(
                    id=record.gift_type,
                    emoji=record.emoji,
                    name=record.name,
                    amount=record.amount,
                    rarity=record.rarity,
                ),
                sender=sender,
            ),
        )
        delivered = await self.hub.broadcast(envelope.to_wire())
        logger.info(
            "礼物已广播 | topic=%s | gift=%s | rarity=%s | 送达 %d",
            topic, record.gift_type, record.rarity, delivered,
        )
        return record

    async def post_comment(self, video_id: int, request: CommentRequest) -> CommentRecord:
        """持久化评论。``comment`` 信封由发起端在成功后自行发送。"""
        try:
            return await self.repo.create_comment(
                user_id=request.user_id,
                video_id=video_id,
                content=request.content,
                parent_id=request.parent_id,
            )
        except Exception as e:
            logger.error("评论持久化失败 | video=%s | %s", video_id, e, exc_info=True)
            raise PersistenceError("comment", e) from e

    async def toggle_like(self, video_id: int, user_id: str) -> bool:
        """切换点赞状态，返回切换后的状态。"""
        try:
            return await self.repo.toggle_like(user_id, video_id)
        except Exception as e:
            logger.error("点赞持久化失败 | video=%s | %s", video_id, e, exc_info=True)
            raise PersistenceError("like", e) from e

    async def record_view(self, video_id: int) -> None:
        """播放量加一，并广播 ``view`` 信封（客户端可忽略）。"""
        topic = Topic.video(video_id)
        try:
            await self.repo.update_topic_stats(topic, "views", 1)
        except Exception as e:
            logger.error("播放量更新失败 | video=%s | %s", video_id, e, exc_info=True)
            raise PersistenceError("view", e) from e
        await self.hub.broadcast(ViewEnvelope.for_topic(topic).to_wire())

    async def _sender_info(self, sender_id: str) -> GiftSender:
        """查询送礼者展示信息；查询失败不影响广播。"""
        try:
            profile = await self.repo.get_user_profile(sender_id)
        except Exception as e:
            logger.warning("查询送礼用户失败: %s", e)
            profile = None
        if not profile:
            return GiftSender()
        return GiftSender(
            username=profile.get("username") or "Anonymous",
            profile_image_url=profile.get("profile_image_url"),
        )
