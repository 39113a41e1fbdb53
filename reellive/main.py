"""
reellive.main
~~~~~~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from reellive.api import hub_ws, interactions
from reellive.api.deps import get_event_hub
from reellive.core.config import settings
from reellive.core.logging import get_logger, setup_logging
from reellive.core.rate_limit import limiter
from reellive.db import close_mongo, connect_mongo, get_database
from reellive.db.interaction_repository import InteractionRepository
from reellive.schemas.api_response import ApiResponse
from reellive.services.event_hub import EventHub
from reellive.services.interaction_service import InteractionService, PersistenceError

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子：创建进程级 Event Hub 与互动服务。"""
    await connect_mongo()
    hub = EventHub()
    app.state.event_hub = hub
    app.state.interaction_service = InteractionService(
        repo=InteractionRepository(get_database()),
        hub=hub,
    )
    logger.info(
        "🚀 应用已启动 | env=%s | debug=%s | log_level=%s | hub=%s",
        settings.ENVIRONMENT,
        settings.debug,
        settings.effective_log_level,
        settings.HUB_WS_PATH,
    )
    yield
    await close_mongo()
    logger.info("👋 应用已关闭 | 剩余连接: %d", hub.online_count)


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="短视频 / 直播实时事件扇出核心 API",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

if settings.allow_cors_all_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(interactions.router, prefix="/api", tags=["Interactions"])
app.include_router(hub_ws.router, tags=["Event Hub"])


# ── 异常处理器 ────────────────────────────────────────────────────────

@app.exception_handler(PersistenceError)
async def persistence_exception_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """持久化失败只反馈给发起请求的客户端，不会触发广播。"""
    detail = str(exc) if not settings.is_prod else f"{exc.action} 保存失败"
    response = ApiResponse.fail(msg=detail, code=502)
    return JSONResponse(status_code=502, content=response.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500)
    return JSONResponse(status_code=500, content=response.model_dump())


@app.get("/health", tags=["System"])
async def health_check(hub: EventHub = Depends(get_event_hub)) -> JSONResponse:
    """验证服务是否正常运行，并返回当前 Hub 在线连接数。"""
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "debug": settings.debug,
            "log_level": settings.effective_log_level,
            "hub_connections": hub.online_count,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "reellive.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,
        log_level=settings.effective_log_level.lower(),
    )
