"""
reellive.db.interaction_repository
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

互动数据持久化仓库 —— 礼物、评论、点赞与内容项计数器。

内容项（视频 / 直播）的聚合计数保存在 ``videos`` / ``live_streams`` 集合中，
以整数 id 作为 ``_id``；计数器通过 ``$inc`` 原子更新。
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, TypedDict

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from reellive.core.logging import get_logger
from reellive.schemas.events import Rarity, Topic
from reellive.schemas.interactions import CommentRecord, GiftRecord

logger = get_logger(__name__)

CounterField = Literal["gifts_count", "likes_count", "comments_count", "views"]

_TOPIC_COLLECTIONS: dict[str, str] = {
    "video": "videos",
    "live_stream": "live_streams",
}


class UserProfile(TypedDict, total=False):
    """``users`` 集合中广播需要用到的字段。"""
    username: str | None
    profile_image_url: str | None


class InteractionRepository:
    """互动数据仓库。

    Attributes:
        db: MongoDB 数据库实例。
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.db = db
        self._gifts = db["gifts"]
        self._comments = db["comments"]
        self._likes = db["likes"]
        self._users = db["users"]
        self._indexes_created = False

    async def _ensure_indexes(self) -> None:
        """确保索引已创建（惰性，首次操作时执行一次）。"""
        if self._indexes_created:
            return
        await self._gifts.create_index(
            [("topic_kind", 1), ("topic_id", 1), ("created_at", -1)],
            name="idx_gift_topic_time",
        )
        await self._comments.create_index(
            [("video_id", 1), ("created_at", -1)],
            name="idx_comment_video_time",
        )
        await self._likes.create_index(
            [("user_id", 1), ("video_id", 1)],
            name="uniq_like_user_video",
            unique=True,
        )
        self._indexes_created = True
        logger.debug("互动集合索引已就绪")

    async def update_topic_stats(self, topic: Topic, field: CounterField, increment: int) -> None:
        """原子更新内容项的聚合计数。"""
        collection = self.db[_TOPIC_COLLECTIONS[topic.kind]]
        await collection.update_one(
            {"_id": topic.id},
            {"$inc": {field: increment}},
            upsert=True,
        )

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        """查询用户的展示信息。"""
        return await self._users.find_one(
            {"_id": user_id},
            {"_id": 0, "username": 1, "profile_image_url": 1},
        )

    async def create_gift(
        self,
        sender_id: str,
        receiver_id: str,
        topic: Topic,
        gift_type: str,
        amount: int,
        rarity: Rarity,
        emoji: str,
        name: str,
    ) -> GiftRecord:
        """写入一条礼物记录，并把内容项的 ``gifts_count`` 加一。

        Returns:
            持久化后的规范礼物记录。
        """
        await self._ensure_indexes()
        doc = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "topic_kind": topic.kind,
            "topic_id": topic.id,
            "gift_type": gift_type,
            "amount": amount,
            "coin_cost": amount,
            "rarity": rarity,
            "emoji": emoji,
            "name": name,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self._gifts.insert_one(doc)
        await self.update_topic_stats(topic, "gifts_count", 1)
        doc.pop("_id", None)
        return GiftRecord(id=str(result.inserted_id), **doc)

    async def create_comment(
        self,
        user_id: str,
        video_id: int,
        content: str,
        parent_id: str | None = None,
    ) -> CommentRecord:
        """写入一条评论，并把视频的 ``comments_count`` 加一。"""
        await self._ensure_indexes()
        doc = {
            "user_id": user_id,
            "video_id": video_id,
            "parent_id": parent_id,
            "content": content,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self._comments.insert_one(doc)
        await self.update_topic_stats(Topic.video(video_id), "comments_count", 1)
        doc.pop("_id", None)
        return CommentRecord(id=str(result.inserted_id), **doc)

    async def toggle_like(self, user_id: str, video_id: int) -> bool:
        """切换点赞状态。

        Returns:
            切换后是否处于点赞状态。
        """
        await self._ensure_indexes()
        existing = await self._likes.find_one_and_delete(
            {"user_id": user_id, "video_id": video_id},
        )
        if existing is not None:
            await self.update_topic_stats(Topic.video(video_id), "likes_count", -1)
            return False

        await self._likes.find_one_and_update(
            {"user_id": user_id, "video_id": video_id},
            {"$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        await self.update_topic_stats(Topic.video(video_id), "likes_count", 1)
        return True
