"""
reellive.core.rate_limit
~~~~~~~~~~~~~~~~~~~~~~~~

HTTP 互动接口（送礼 / 评论 / 点赞）的限流配置。
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

# 基于客户端 IP 地址进行限流，内存存储（单进程部署）
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)
