"""chat_sync 顶层包。

该包实现一个基于轮询的聊天同步客户端，
包括配置加载、领域模型、HTTP 适配、会话守卫、
增量同步引擎、在线列表轮询与渲染层抽象等能力。
"""

from chat_sync.api.service import ChatService

__all__ = ["ChatService"]
