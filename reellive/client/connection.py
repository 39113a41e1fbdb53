"""
reellive.client.connection
~~~~~~~~~~~~~~~~~~~~~~~~~~

与 Event Hub 的共享连接 —— 每个客户端进程一个，显式创建、显式关闭。

状态机::

    DISCONNECTED → CONNECTING → CONNECTED → DISCONNECTED（关闭 / 出错）

断线后按 ``base * 2^n`` 秒退避重连，连续 ``max_attempts`` 次失败后停止，
直到有组件重新挂载（``ensure_connected()``）。未连接时的发送直接丢弃，
没有出站队列。入站消息解析为信封后分发给所有订阅者，订阅者各自按
``type`` / topic 过滤。
"""
from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from reellive.core.config import settings
from reellive.core.logging import get_logger
from reellive.schemas.events import Envelope, IgnoredEvent, parse_envelope

logger = get_logger(__name__)

Listener = Callable[[Envelope], None]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Subscription:
    """``subscribe()`` 返回的取消句柄。``cancel()`` 可重复调用。"""

    def __init__(self, connection: HubConnection, listener: Listener) -> None:
        self._connection = connection
        self.listener = listener
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._connection._listeners.pop(id(self), None)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()


class HubConnection:
    """自动重连的 Hub 客户端连接（多订阅者共享，订阅者不得关闭它）。

    Args:
        url: Hub 的 WebSocket 地址。
        base_delay: 重连基础延迟（秒）。
        max_attempts: 连续重连次数上限。
        connect: 建立连接的工厂，默认为 ``websockets.asyncio.client.connect``。
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        base_delay: float | None = None,
        max_attempts: int | None = None,
        connect: Callable[[str], Any] = ws_connect,
    ) -> None:
        self.url = url or settings.HUB_URL
        self.base_delay = settings.RECONNECT_BASE_DELAY if base_delay is None else base_delay
        self.max_attempts = settings.RECONNECT_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self._connect = connect

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self._listeners: dict[int, Subscription] = {}
        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._send_tasks: set[asyncio.Task] = set()
        self._closing = False

    # ── 生命周期 ──────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        """连接循环是否仍在运行（连接中、已连接或等待重连）。"""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动连接循环。需在运行中的事件循环内调用。"""
        if self.is_running:
            return
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def ensure_connected(self) -> None:
        """组件挂载时调用：若重连已放弃，则重置计数并重新开始。"""
        if self._closing or self.is_running:
            return
        self.reconnect_attempts = 0
        self.start()

    async def close(self) -> None:
        """停止重连并关闭底层连接。应在应用退出时调用一次。"""
        self._closing = True
        if self._ws is not None:
            try:
                await self._ws.close()
            except (OSError, WebSocketException) as e:
                logger.debug("关闭连接时出错: %r", e)
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        for task in list(self._send_tasks):
            task.cancel()
        self._listeners.clear()
        self.state = ConnectionState.DISCONNECTED
        logger.info("Hub 连接已关闭")

    async def wait_stopped(self) -> None:
        """等待连接循环结束（重连放弃或被关闭）。"""
        if self._task is not None:
            await asyncio.shield(self._task)

    def _next_delay(self) -> float | None:
        """下一次重连的等待时间；超过次数上限时返回 ``None``。"""
        if self.reconnect_attempts >= self.max_attempts:
            return None
        self.reconnect_attempts += 1
        return self.base_delay * (2 ** self.reconnect_attempts)

    async def _run(self) -> None:
        while not self._closing:
            self.state = ConnectionState.CONNECTING
            try:
                async with self._connect(self.url) as ws:
                    self._ws = ws
                    self.state = ConnectionState.CONNECTED
                    self.reconnect_attempts = 0
                    logger.info("Hub 已连接 | url=%s", self.url)
                    async for raw in ws:
                        self.dispatch(raw)
                logger.info("Hub 连接已断开")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning("Hub 连接异常: %r", e)
            finally:
                self._ws = None
                self.state = ConnectionState.DISCONNECTED

            if self._closing:
                break
            delay = self._next_delay()
            if delay is None:
                logger.warning(
                    "Hub 重连已放弃 | 连续 %d 次失败，等待组件重新挂载",
                    self.max_attempts,
                )
                break
            logger.info("%.1f 秒后重连 | 第 %d 次", delay, self.reconnect_attempts)
            await asyncio.sleep(delay)

    # ── 收发 ──────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Subscription:
        """登记一个入站信封监听器，返回取消句柄。"""
        subscription = Subscription(self, listener)
        self._listeners[id(subscription)] = subscription
        return subscription

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def dispatch(self, raw: str | bytes) -> None:
        """解析一条入站消息并分发给所有订阅者。"""
        envelope = parse_envelope(raw)
        if isinstance(envelope, IgnoredEvent):
            logger.debug("忽略入站消息 | reason=%s | %s", envelope.reason, envelope.detail)
            return
        for subscription in list(self._listeners.values()):
            if not subscription.active:
                continue
            try:
                subscription.listener(envelope)
            except Exception as e:
                logger.error("监听器处理 %s 失败: %s", envelope.type, e, exc_info=True)

    def send(self, envelope: Envelope) -> bool:
        """发送一个信封（即发即弃）。

        Returns:
            是否已交给底层连接；未连接时返回 ``False`` 且消息丢弃。
        """
        ws = self._ws
        if self.state is not ConnectionState.CONNECTED or ws is None:
            logger.debug("未连接，丢弃出站 %s", envelope.type)
            return False
        task = asyncio.get_running_loop().create_task(self._send_text(ws, envelope.to_wire()))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return True

    async def _send_text(self, ws: Any, message: str) -> None:
        try:
            await ws.send(message)
        except (OSError, WebSocketException) as e:
            logger.warning("发送失败，消息丢弃: %r", e)
