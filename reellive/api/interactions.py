"""
reellive.api.interactions
~~~~~~~~~~~~~~~~~~~~~~~~~

互动 REST 接口 —— 送礼 / 评论 / 点赞 / 播放量。

端点:
  - ``POST /videos/{video_id}/gift``              → 送礼（持久化后广播）
  - ``POST /live-streams/{stream_id}/gift``       → 直播间送礼（持久化后广播）
  - ``POST /videos/{video_id}/comments``          → 发表评论
  - ``POST /videos/{video_id}/like``              → 切换点赞
  - ``POST /videos/{video_id}/view``              → 播放量加一
"""
from fastapi import APIRouter, Depends, Request

from reellive.api.deps import get_interaction_service
from reellive.core.config import settings
from reellive.core.rate_limit import limiter
from reellive.schemas.api_response import ApiResponse
from reellive.schemas.events import Topic
from reellive.schemas.interactions import (
    CommentRecord,
    CommentRequest,
    GiftRecord,
    GiftRequest,
    LikeRequest,
    LikeToggleData,
    ViewData,
)
from reellive.services.interaction_service import InteractionService

router: APIRouter = APIRouter()


# ── 送礼端点 ──────────────────────────────────────────────────────────

@router.post("/videos/{video_id}/gift", summary="给视频送礼", response_model=ApiResponse[GiftRecord])
@limiter.limit(settings.INTERACTION_RATE_LIMIT)
async def send_video_gift(
    request: Request,
    video_id: int,
    gift_request: GiftRequest,
    service: InteractionService = Depends(get_interaction_service),
):
    """持久化礼物记录；成功后向所有在线客户端广播 ``gift`` 信封。"""
    record = await service.send_gift(Topic.video(video_id), gift_request)
    return ApiResponse.ok(data=record)


@router.post(
    "/live-streams/{stream_id}/gift",
    summary="给直播间送礼",
    response_model=ApiResponse[GiftRecord],
)
@limiter.limit(settings.INTERACTION_RATE_LIMIT)
async def send_stream_gift(
    request: Request,
    stream_id: int,
    gift_request: GiftRequest,
    service: InteractionService = Depends(get_interaction_service),
):
    record = await service.send_gift(Topic.live_stream(stream_id), gift_request)
    return ApiResponse.ok(data=record)


# ── 评论 / 点赞 / 播放量 ──────────────────────────────────────────────

@router.post(
    "/videos/{video_id}/comments",
    summary="发表评论",
    response_model=ApiResponse[CommentRecord],
)
@limiter.limit(settings.INTERACTION_RATE_LIMIT)
async def post_comment(
    request: Request,
    video_id: int,
    comment_request: CommentRequest,
    service: InteractionService = Depends(get_interaction_service),
):
    """持久化评论并返回规范记录。实时通知由发起端在成功后发送。"""
    record = await service.post_comment(video_id, comment_request)
    return ApiResponse.ok(data=record)


@router.post("/videos/{video_id}/like", summary="切换点赞", response_model=ApiResponse[LikeToggleData])
@limiter.limit(settings.INTERACTION_RATE_LIMIT)
async def toggle_like(
    request: Request,
    video_id: int,
    like_request: LikeRequest,
    service: InteractionService = Depends(get_interaction_service),
):
    liked = await service.toggle_like(video_id, like_request.user_id)
    return ApiResponse.ok(data=LikeToggleData(liked=liked))


@router.post("/videos/{video_id}/view", summary="播放量加一", response_model=ApiResponse[ViewData])
async def record_view(
    video_id: int,
    service: InteractionService = Depends(get_interaction_service),
):
    await service.record_view(video_id)
    return ApiResponse.ok(data=ViewData())
