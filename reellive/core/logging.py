"""
reellive.core.logging
~~~~~~~~~~~~~~~~~~~~~

统一日志配置，根据环境自动设置日志级别和格式。

所有模块应通过 ``get_logger(__name__)`` 获取 logger 实例。
WebSocket 连接处理期间会设置 ``conn_id_ctx_var``，日志中自动带上连接标识。
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

from reellive.core.config import settings

# 当前处理中的 WebSocket 连接标识（非连接上下文时为 "-"）
conn_id_ctx_var: ContextVar[str] = ContextVar("conn_id", default="-")

# 日志格式：时间 | 级别 | 模块名 | [连接] 消息
_LOG_FORMAT: str = "%(asctime)s | %(levelname)-7s | %(name)s | [%(conn_id)s] %(message)s"
_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"


class ConnIdFilter(logging.Filter):
    """把 ``conn_id_ctx_var`` 注入到每条日志记录。"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.conn_id = conn_id_ctx_var.get()
        return True


def setup_logging() -> None:
    """根据当前环境配置全局日志。应在应用启动时调用一次。"""
    level = getattr(logging, settings.effective_log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ConnIdFilter())
    logging.basicConfig(
        level=level,
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        handlers=[handler],
        force=True,  # 覆盖可能已有的 basicConfig
    )

    # 降低第三方库的日志噪音
    for noisy in ("httpcore", "httpx", "websockets", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """获取指定模块的 logger 实例。

    Args:
        name: 模块名，通常传 ``__name__``。

    Returns:
        配置好的 ``logging.Logger`` 实例。
    """
    return logging.getLogger(name)
