"""同步客户端共享的数据模型。

本模块定义了 API 客户端、同步引擎与渲染层之间传递的标准结构：

- UserProfile: 服务端用户对象（发送者、在线用户、当前用户）。
- Message: 一条聊天消息，id 单调递增。
- PresenceSnapshot / ChatStats: 在线列表与聚合计数，每次轮询整体替换。
- Session / SyncState / EngineState: 会话与引擎内部状态。

ChatApiClient 负责把服务端 JSON 转换成这些模型，
上层组件只依赖这里的 dataclass。
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


# 服务端以 UTC 存储，格式为 SQLite CURRENT_TIMESTAMP
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class UserProfile:
    """服务端返回的用户信息。"""

    id: int
    login: str
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=int(data.get("id", 0)),
            login=str(data.get("login") or ""),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
        )

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.login

    @property
    def avatar_text(self) -> str:
        """头像缩写：名和姓的首字母；没有姓时取名的前两个字母。"""

        if self.last_name:
            text = self.first_name[:1] + self.last_name[:1]
        else:
            text = self.first_name[:2]
        return (text or self.login[:2]).upper()


@dataclass(frozen=True)
class Message:
    """一条聊天消息。

    - id: 服务端分配的单调递增 id，增量同步的游标即基于它。
    - sender: 发送者信息。
    - text: 消息正文（服务端字段 message_text）。
    - timestamp: 服务端原始时间戳字符串。
    """

    id: int
    sender: UserProfile
    text: str
    timestamp: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=int(data["id"]),
            sender=UserProfile.from_payload(data.get("user") or {}),
            text=str(data.get("message_text") or ""),
            timestamp=str(data.get("timestamp") or ""),
        )

    @property
    def sent_at(self) -> Optional[datetime]:
        try:
            return datetime.strptime(self.timestamp, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            return None

    def format_time(self, tz: Optional[tzinfo] = None) -> str:
        """按给定时区（默认本地时区）格式化为 HH:MM。"""

        sent = self.sent_at
        if sent is None:
            return ""
        return sent.astimezone(tz).strftime("%H:%M")


@dataclass(frozen=True)
class PresenceSnapshot:
    """在线用户快照，每次轮询整体替换，不保留历史。"""

    users: Tuple[UserProfile, ...] = ()
    total_online: int = 0

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PresenceSnapshot":
        users = tuple(UserProfile.from_payload(u) for u in data.get("online_users") or [])
        total = data.get("total_online")
        return cls(users=users, total_online=int(total) if total is not None else len(users))

    @property
    def online_logins(self) -> FrozenSet[str]:
        return frozenset(u.login for u in self.users)


@dataclass(frozen=True)
class ChatStats:
    """消息总数与用户总数；子请求失败时对应字段保持旧值。"""

    total_messages: Optional[int] = None
    total_users: Optional[int] = None


@dataclass(frozen=True)
class ServerStatus:
    status: str
    started_at: str = ""
    timestamp: str = ""

    @property
    def online(self) -> bool:
        return self.status == "online"


class TokenValidity(str, Enum):
    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"


@dataclass
class Session:
    """本地会话。validity 只记录最近一次服务端校验的结论，不作为缓存使用。"""

    token: Optional[str] = None
    validity: TokenValidity = TokenValidity.UNKNOWN


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LIVE = "live"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


@dataclass
class SyncState:
    """同步引擎的内部状态。

    - auto_scroll: 追加前从渲染层读取的“是否位于底部”，引擎自己不决定滚动位置。
    - suppress_next_poll: 发送后的一次性抑制标记，跳过紧随其后的一次定时轮询。
    """

    auto_scroll: bool = True
    suppress_next_poll: bool = False
