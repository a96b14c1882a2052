"""对外服务模块。

ChatService 把一个用户会话需要的组件组装在一起，并实现启动流程：
校验 token → 加载当前用户 → 加载历史并建立游标 → 刷新一次在线列表 → 启动两个定时器。
"""

from typing import Callable, List, Optional

from chat_sync.api.client import ChatApiClient
from chat_sync.config.settings import settings
from chat_sync.domain.exceptions import BusinessError
from chat_sync.domain.models import EngineState, Message, ServerStatus, Session, UserProfile
from chat_sync.domain.session import TokenStore
from chat_sync.infrastructure.logging.logger import logger
from chat_sync.infrastructure.storage.token_store import JsonTokenStore
from chat_sync.render.base import RenderSink
from chat_sync.sync.engine import SyncEngine
from chat_sync.sync.presence import PresencePoller
from chat_sync.sync.session_guard import SessionGuard


class ChatService:
    def __init__(
        self,
        sink: RenderSink,
        *,
        api: Optional[ChatApiClient] = None,
        store: Optional[TokenStore] = None,
        cfg=settings,
        on_session_lost: Optional[Callable[[BusinessError], None]] = None,
    ):
        self._settings = cfg
        self.api = api or ChatApiClient(cfg)
        self.guard = SessionGuard(self.api, store or JsonTokenStore(root=cfg.storage_root))
        self.presence = PresencePoller(self.api, self.guard, sink)
        self.engine = SyncEngine(
            self.api,
            self.guard,
            sink,
            presence=self.presence,
            history_limit=cfg.history_limit,
            message_interval=cfg.message_poll_interval,
            presence_interval=cfg.presence_poll_interval,
            on_auth_failure=self._handle_auth_failure,
        )
        self.current_user: Optional[UserProfile] = None
        self._on_session_lost = on_session_lost

    async def alive(self) -> ServerStatus:
        return await self.api.alive()

    async def login(self, login: str, password: str) -> Session:
        return await self.guard.login(login, password)

    async def register(
        self,
        login: str,
        password: str,
        first_name: str,
        last_name: str,
        *,
        confirm_password: Optional[str] = None,
        auto_login: bool = True,
    ) -> Optional[Session]:
        return await self.guard.register(
            login,
            password,
            first_name,
            last_name,
            confirm_password=confirm_password,
            auto_login=auto_login,
        )

    async def start(self) -> UserProfile:
        """启动同步。

        Raises:
            AuthFailure: 未登录或 token 已失效。
            TransientNetworkFailure: 初始加载时网络不可用。
            ApiError: 服务端拒绝请求。
            BusinessError: 启动过程中会话被 close() 或 logout() 关闭（code=SESSION_CLOSED）。
        """
        token = await self.guard.acquire()
        self.current_user = await self.api.current_user(token)
        await self.engine.initial_load()
        if self.engine.state is not EngineState.LIVE:
            # close() 或 logout() 在初始加载期间被调用
            raise BusinessError(code="SESSION_CLOSED", message="Chat session was closed while starting")
        await self.presence.refresh()
        self.engine.start()
        logger.info(
            "Chat session started",
            extra={"extra": {"login": self.current_user.login, "cursor": self.engine.last_seen_id}},
        )
        return self.current_user

    async def send(self, text: str) -> List[Message]:
        return await self.engine.send(text)

    async def logout(self) -> None:
        self.engine.destroy()
        await self.guard.logout()
        self.current_user = None

    async def close(self) -> None:
        self.engine.destroy()
        await self.engine.drain()

    def _handle_auth_failure(self, error: BusinessError) -> None:
        self.guard.expire()
        logger.warning(
            f"Session lost: {error.message}",
            extra={"extra": {"code": error.code, "http_status": error.http_status}},
        )
        if self._on_session_lost is not None:
            self._on_session_lost(error)
