"""
reellive.api.hub_ws
~~~~~~~~~~~~~~~~~~~

Event Hub 的 WebSocket 接入点。

所有客户端连接同一个升级路径，不区分 topic；收到的每条消息交给
``EventHub.relay`` 转发给其它连接。认证由宿主层负责。
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from reellive.core.config import settings
from reellive.core.logging import conn_id_ctx_var, get_logger
from reellive.services.event_hub import EventHub

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket(settings.HUB_WS_PATH)
async def websocket_hub_endpoint(websocket: WebSocket) -> None:
    """实时事件中继端点。

    消息协议为 JSON 事件信封（见 ``reellive.schemas.events``），
    非法消息直接丢弃，不会回复发送者。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    token = conn_id_ctx_var.set(f"ws-{uuid.uuid4().hex[:8]}")
    hub: EventHub = websocket.app.state.event_hub

    try:
        await hub.connect(websocket)
        logger.info("客户端已连接 | 在线: %d", hub.online_count)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                # 二进制帧与文本帧一样交给 relay，无法解析时丢弃
                raw_message = message.get("text")
                if raw_message is None:
                    raw_message = message.get("bytes") or b""
                await hub.relay(websocket, raw_message)
        except WebSocketDisconnect:
            pass  # 正常断开
        except Exception as e:
            logger.error("WebSocket 接收异常: %s", e, exc_info=True)
        finally:
            hub.disconnect(websocket)
            logger.info("客户端已断开 | 在线: %d", hub.online_count)
    finally:
        conn_id_ctx_var.reset(token)
