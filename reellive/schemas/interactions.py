"""
reellive.schemas.interactions
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

送礼 / 评论 / 点赞相关的 HTTP 请求体与持久化记录模型。
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from reellive.schemas.events import Rarity, TopicKind


class GiftRequest(BaseModel):
    """送礼请求体。身份认证由宿主层负责，这里直接携带 sender_id。"""

    sender_id: str = Field(..., min_length=1, description="送礼用户 ID")
    receiver_id: str = Field(..., min_length=1, description="收礼用户 ID（内容作者）")
    gift_type: str = Field(..., min_length=1, description="礼物类型，如 rose / rocket")
    amount: int = Field(..., ge=1, description="礼物金币数")
    rarity: Rarity = Field(default="common", description="稀有度")
    emoji: str = Field(default="🎁", description="礼物 emoji")
    name: str = Field(default="Gift", description="礼物名称")


class GiftRecord(BaseModel):
    """持久化后的礼物记录（规范形式）。"""

    id: str = Field(..., description="记录 ID")
    sender_id: str
    receiver_id: str
    topic_kind: TopicKind
    topic_id: int
    gift_type: str
    amount: int
    coin_cost: int
    rarity: Rarity
    emoji: str
    name: str
    created_at: datetime


class CommentRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="评论用户 ID")
    content: str = Field(..., min_length=1, max_length=500, description="评论内容")
    parent_id: str | None = Field(default=None, description="回复的父评论 ID")


class CommentRecord(BaseModel):
    id: str
    user_id: str
    video_id: int
    parent_id: str | None = None
    content: str
    created_at: datetime


class LikeRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="点赞用户 ID")


class LikeToggleData(BaseModel):
    """点赞切换结果。"""

    liked: bool = Field(..., description="切换后是否处于点赞状态")


class ViewData(BaseModel):
    success: bool = True
