"""
reellive.services.event_hub
~~~~~~~~~~~~~~~~~~~~~~~~~~~

Event Hub —— 进程级的广播中继。

Hub 不理解事件语义：收到任意连接的消息后原样转发给其余所有在线连接，
不做 topic 过滤（过滤由客户端按 ``videoId`` / ``liveStreamId`` 完成）。
连接集合只会被 connect / disconnect 修改，转发失败不会移除连接。
"""
from __future__ import annotations

import asyncio

from fastapi import WebSocket

from reellive.core.logging import get_logger
from reellive.schemas.events import IgnoredEvent, parse_envelope

logger = get_logger(__name__)


class EventHub:
    """全局广播中继。在 FastAPI lifespan 中创建，挂载于 ``app.state.event_hub``。

    Attributes:
        active_connections: 当前在线的所有 WebSocket 连接。
    """

    def __init__(self) -> None:
        self.active_connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """接受新连接并加入在线集合。"""
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        """从在线集合移除已关闭的连接。"""
        self.active_connections.discard(websocket)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)

    async def relay(self, sender: WebSocket, raw_message: str | bytes) -> int:
        """把一条入站消息原样转发给除发送者外的所有连接。

        消息必须能解析为合法的事件信封，否则记录日志后丢弃。
        二进制帧中的合法信封以重新序列化的文本转发。

        Returns:
            成功送达的连接数。
        """
        envelope = parse_envelope(raw_message)
        if isinstance(envelope, IgnoredEvent):
            logger.warning("丢弃非法消息 | reason=%s | %s", envelope.reason, envelope.detail)
            return 0

        if isinstance(raw_message, bytes):
            raw_message = envelope.to_wire()
        recipients = [ws for ws in self.active_connections if ws is not sender]
        return await self._fan_out(recipients, raw_message)

    async def broadcast(self, message: str) -> int:
        """向所有在线连接广播（服务端主动推送，如送礼成功后）。"""
        return await self._fan_out(list(self.active_connections), message)

    async def _fan_out(self, recipients: list[WebSocket], message: str) -> int:
        if not recipients:
            return 0
        results = await asyncio.gather(
            *(ws.send_text(message) for ws in recipients),
            return_exceptions=True,
        )
        delivered = 0
        for result in results:
            if isinstance(result, Exception):
                # 单个接收方失败不影响其它连接；连接由其自身的 close 事件移除
                logger.warning("转发失败: %r", result)
            else:
                delivered += 1
        return delivered
