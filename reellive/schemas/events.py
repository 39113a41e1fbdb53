"""
reellive.schemas.events
~~~~~~~~~~~~~~~~~~~~~~~

实时事件信封（Event Envelope）—— Hub 与客户端之间唯一的通信单元。

线上格式::

    {"type": "gift", "data": {...}, "videoId": 1, "timestamp": "2024-01-01T00:00:00Z"}

``type`` 字段作为判别字段，不同类型的 ``data`` 结构不同。解析入口为
``parse_envelope()``：成功时返回具体的信封模型，失败时返回 ``IgnoredEvent``，
永远不抛异常。
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, NamedTuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

EventType = Literal["gift", "like", "comment", "view", "sync_reaction", "viewer_count"]
Rarity = Literal["common", "rare", "epic", "legendary"]
TopicKind = Literal["video", "live_stream"]

RARITY_TIERS: tuple[str, ...] = ("common", "rare", "epic", "legendary")
EVENT_TYPES: tuple[str, ...] = ("gift", "like", "comment", "view", "sync_reaction", "viewer_count")


class Topic(NamedTuple):
    """事件所属的内容项：一个视频或一场直播。"""

    kind: TopicKind
    id: int

    @classmethod
    def video(cls, video_id: int) -> Topic:
        return cls("video", video_id)

    @classmethod
    def live_stream(cls, stream_id: int) -> Topic:
        return cls("live_stream", stream_id)


# ── 各类型的 data 结构 ────────────────────────────────────────────────

class GiftDescriptor(BaseModel):
    """礼物描述（id 即礼物类型，用于连击判定）。"""

    id: str = Field(..., description="礼物类型标识，如 rose / rocket")
    emoji: str = Field(default="🎁")
    name: str = Field(default="Gift")
    amount: int = Field(default=0, ge=0, description="金币数")
    rarity: Rarity = Field(default="common")

    @field_validator("rarity", mode="before")
    @classmethod
    def _fallback_rarity(cls, value: Any) -> str:
        # 缺失或无法识别的稀有度一律按最低档处理
        if isinstance(value, str) and value in RARITY_TIERS:
            return value
        return "common"


class GiftSender(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(default="Anonymous")
    profile_image_url: str | None = Field(default=None, alias="profileImageUrl")


class GiftEventData(BaseModel):
    gift: GiftDescriptor
    sender: GiftSender = Field(default_factory=GiftSender)


class SyncReactionData(BaseModel):
    """同步反应的负载。``type`` 保持为字符串，未知类型由客户端丢弃。"""

    type: str
    emoji: str = Field(default="")
    color: str = Field(default="")
    participants: int = Field(default=1, ge=0, description="服务端聚合后的参与人数")


class ViewerCountData(BaseModel):
    count: int = Field(..., ge=0)


# ── 信封 ─────────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _EnvelopeBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: int | None = Field(default=None, alias="videoId")
    live_stream_id: int | None = Field(default=None, alias="liveStreamId")
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def topic(self) -> Topic | None:
        """信封所属的内容项；两个 id 都缺失时为 ``None``。"""
        if self.video_id is not None:
            return Topic.video(self.video_id)
        if self.live_stream_id is not None:
            return Topic.live_stream(self.live_stream_id)
        return None

    @classmethod
    def for_topic(cls, topic: Topic, **fields: Any) -> Any:
        """按 ``Topic`` 构造信封，自动填入 videoId / liveStreamId。"""
        if topic.kind == "video":
            fields["video_id"] = topic.id
        else:
            fields["live_stream_id"] = topic.id
        return cls(**fields)

    def to_wire(self) -> str:
        """序列化为线上 JSON 文本（camelCase，省略空字段）。"""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class GiftEnvelope(_EnvelopeBase):
    type: Literal["gift"] = "gift"
    data: GiftEventData


class LikeEnvelope(_EnvelopeBase):
    type: Literal["like"] = "like"
    data: dict[str, Any] | None = None


class CommentEnvelope(_EnvelopeBase):
    type: Literal["comment"] = "comment"
    data: dict[str, Any] = Field(default_factory=dict, description="持久化后的评论记录")

    @model_validator(mode="before")
    @classmethod
    def _accept_top_level_comment(cls, values: Any) -> Any:
        # 旧客户端把评论放在顶层 "comment" 字段
        if isinstance(values, dict) and "data" not in values and isinstance(values.get("comment"), dict):
            values = {**values, "data": values["comment"]}
        return values


class ViewEnvelope(_EnvelopeBase):
    type: Literal["view"] = "view"
    data: dict[str, Any] | None = None


class SyncReactionEnvelope(_EnvelopeBase):
    type: Literal["sync_reaction"] = "sync_reaction"
    data: SyncReactionData


class ViewerCountEnvelope(_EnvelopeBase):
    type: Literal["viewer_count"] = "viewer_count"
    data: ViewerCountData

    @model_validator(mode="before")
    @classmethod
    def _accept_top_level_count(cls, values: Any) -> Any:
        # 在线人数推送可能直接把 count 放在顶层
        if isinstance(values, dict) and "data" not in values and "count" in values:
            values = {**values, "data": {"count": values["count"]}}
        return values


Envelope = Annotated[
    Union[
        GiftEnvelope,
        LikeEnvelope,
        CommentEnvelope,
        ViewEnvelope,
        SyncReactionEnvelope,
        ViewerCountEnvelope,
    ],
    Field(discriminator="type"),
]

_envelope_adapter: TypeAdapter[Envelope] = TypeAdapter(Envelope)


class IgnoredEvent(BaseModel):
    """无法处理的入站消息。调用方据此记录日志后丢弃。"""

    reason: Literal["malformed_json", "unknown_type", "invalid_payload"]
    detail: str = ""


def parse_envelope(raw: str | bytes) -> Envelope | IgnoredEvent:
    """解析一条原始消息。

    Args:
        raw: WebSocket 收到的文本或二进制帧。

    Returns:
        对应类型的信封模型；JSON 非法、类型未知或负载不合法时返回 ``IgnoredEvent``。
    """
    try:
        payload = json.loads(raw)
    except (ValueError, TypeError) as e:
        return IgnoredEvent(reason="malformed_json", detail=str(e))

    if not isinstance(payload, dict):
        return IgnoredEvent(reason="malformed_json", detail="envelope must be a JSON object")

    event_type = payload.get("type")
    if event_type not in EVENT_TYPES:
        return IgnoredEvent(reason="unknown_type", detail=repr(event_type))

    try:
        return _envelope_adapter.validate_python(payload)
    except ValidationError as e:
        return IgnoredEvent(
            reason="invalid_payload",
            detail=f"{event_type}: {e.error_count()} validation error(s)",
        )
