"""同步层。

该包下的模块负责：
- session_guard: token 的获取、校验与失效。
- scheduler: 允许 tick 重叠的固定间隔定时器。
- engine: 基于游标的增量消息同步与发送防重。
- presence: 在线列表与统计的尽力而为轮询。
"""

from chat_sync.sync.engine import SyncEngine
from chat_sync.sync.presence import PresencePoller
from chat_sync.sync.scheduler import PeriodicTimer
from chat_sync.sync.session_guard import SessionGuard

__all__ = ["SyncEngine", "PresencePoller", "PeriodicTimer", "SessionGuard"]
