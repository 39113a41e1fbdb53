"""
reellive.client
~~~~~~~~~~~~~~~

客户端反应引擎：共享的 Hub 连接 + 每个内容项一套礼物 / 同步反应 / 刷新信号流水线。
"""
from reellive.client.connection import ConnectionState, HubConnection, Subscription
from reellive.client.engine import FeedViewport, ReactionEngine
from reellive.client.timers import TimerRegistry

__all__ = [
    "ConnectionState",
    "FeedViewport",
    "HubConnection",
    "ReactionEngine",
    "Subscription",
    "TimerRegistry",
]
