"""
reellive
~~~~~~~~

短视频 / 直播平台的实时事件扇出核心：服务端 Event Hub + 客户端反应引擎。
"""
