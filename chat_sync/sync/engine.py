"""增量同步引擎。

实现消息同步协议的核心逻辑：

1. initial_load(): 拉取最近一页历史，整体替换渲染内容，建立初始游标。
2. poll_incremental(): 由消息定时器驱动，只请求 id 大于游标的消息并追加。
3. send(): 发送成功后立即拉取一次增量，然后设置一次性抑制标记，
   跳过紧随其后的一次定时轮询，避免同一条消息被重复渲染。
4. start()/destroy(): 管理消息与在线列表两个互相独立的定时器。

状态流转：uninitialized → loading → live → suspended（认证失败）→ terminated。

定时器的 tick 可能重叠，响应按完成顺序而不是发起顺序到达。
因此每批消息在完成时按当前游标过滤，游标只通过 compare-and-advance 前移，
较旧的响应既不会让游标回退，也不会造成重复追加。
"""

import logging
from typing import Callable, List, Optional

from chat_sync.api.client import ChatApiClient
from chat_sync.config.settings import settings
from chat_sync.domain.cursor import Cursor
from chat_sync.domain.exceptions import (
    ApiError,
    AuthFailure,
    BusinessError,
    TransientNetworkFailure,
    ValidationFailure,
)
from chat_sync.domain.models import EngineState, Message, SyncState
from chat_sync.domain.validators import normalize_message_text
from chat_sync.infrastructure.logging.logger import logger
from chat_sync.render.base import RenderSink
from chat_sync.sync.presence import PresencePoller
from chat_sync.sync.scheduler import PeriodicTimer
from chat_sync.sync.session_guard import SessionGuard

AuthFailureHandler = Callable[[BusinessError], None]


class SyncEngine:
    def __init__(
        self,
        api: ChatApiClient,
        guard: SessionGuard,
        sink: RenderSink,
        *,
        presence: Optional[PresencePoller] = None,
        history_limit: Optional[int] = None,
        message_interval: Optional[float] = None,
        presence_interval: Optional[float] = None,
        on_auth_failure: Optional[AuthFailureHandler] = None,
    ):
        self._api = api
        self._guard = guard
        self._sink = sink
        self._presence = presence
        self._history_limit = history_limit or settings.history_limit
        self._on_auth_failure = on_auth_failure
        self._cursor = Cursor()
        self._sync_state = SyncState()
        self._state = EngineState.UNINITIALIZED
        self._message_timer = PeriodicTimer(
            message_interval or settings.message_poll_interval,
            self.poll_incremental,
            name="messages",
        )
        self._presence_timer: Optional[PeriodicTimer] = None
        if presence is not None:
            self._presence_timer = PeriodicTimer(
                presence_interval or settings.presence_poll_interval,
                presence.refresh,
                name="presence",
            )

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def last_seen_id(self) -> int:
        """当前游标值；游标只由引擎自己前移。"""
        return self._cursor.last_seen_id

    @property
    def sync_state(self) -> SyncState:
        return self._sync_state

    @property
    def timers(self) -> List[PeriodicTimer]:
        return [t for t in (self._message_timer, self._presence_timer) if t is not None]

    async def initial_load(self) -> List[Message]:
        """加载最近一页历史并进入 live 状态。

        网络瞬时故障会阻塞式地抛给调用方，状态回到 uninitialized 以便重试；
        认证失败或非 OK 响应则进入 suspended 并通知外部重新登录。
        """

        if self._state is not EngineState.UNINITIALIZED:
            raise BusinessError(code="INVALID_STATE", message=f"initial_load not allowed in state {self._state.value}")
        self._state = EngineState.LOADING
        try:
            token = await self._guard.acquire()
            messages = await self._api.history(token, self._history_limit)
        except TransientNetworkFailure as e:
            # 加载期间被 destroy() 时保持 terminated
            if self._state is EngineState.LOADING:
                self._state = EngineState.UNINITIALIZED
            self._log(logging.ERROR, "Initial history load failed", code=e.code)
            raise
        except (AuthFailure, ApiError) as e:
            self._suspend(e)
            raise
        if self._state is not EngineState.LOADING:
            # destroy() 在加载期间被调用
            return []
        self._sync_state.auto_scroll = self._sink.is_scrolled_to_bottom()
        self._sink.replace_all(messages)
        if messages:
            self._cursor.advance(messages[-1].id)
        self._state = EngineState.LIVE
        if self._sync_state.auto_scroll:
            self._sink.scroll_to_bottom()
        self._log(logging.INFO, "Initial history loaded", count=len(messages), cursor=self._cursor.last_seen_id)
        return messages

    def start(self) -> None:
        if self._state is not EngineState.LIVE:
            raise BusinessError(code="INVALID_STATE", message=f"cannot start timers in state {self._state.value}")
        for timer in self.timers:
            timer.start()

    async def poll_incremental(self) -> List[Message]:
        if self._state is not EngineState.LIVE:
            return []
        if self._sync_state.suppress_next_poll:
            self._sync_state.suppress_next_poll = False
            self._log(logging.DEBUG, "Poll suppressed after send", cursor=self._cursor.last_seen_id)
            return []
        return await self._fetch_new()

    async def send(self, text: str) -> List[Message]:
        """发送一条消息，返回紧随其后的增量拉取所接受的消息。

        失败时抛出异常且不修改任何状态，调用方应保留输入框内容以便重试。
        """

        body = normalize_message_text(text)
        if not body:
            raise ValidationFailure(code="EMPTY_MESSAGE", message="Message text must not be empty")
        if self._state is not EngineState.LIVE:
            raise BusinessError(code="INVALID_STATE", message=f"cannot send in state {self._state.value}")
        try:
            token = await self._guard.acquire()
            await self._api.send_message(token, body)
        except AuthFailure as e:
            self._suspend(e)
            raise
        except BusinessError as e:
            self._log(logging.WARNING, "Send failed", code=e.code, http_status=e.http_status)
            raise
        accepted = await self._fetch_new()
        # 立即拉取完成之后再设置，只抑制一次定时轮询
        if self._state is EngineState.LIVE:
            self._sync_state.suppress_next_poll = True
        return accepted

    def destroy(self) -> None:
        """取消两个定时器；可重复调用，初始化之前调用也安全。"""

        for timer in self.timers:
            timer.stop()
        if self._state is not EngineState.TERMINATED:
            self._state = EngineState.TERMINATED
            self._log(logging.INFO, "Engine destroyed", cursor=self._cursor.last_seen_id)

    async def drain(self) -> None:
        for timer in self.timers:
            await timer.drain()

    async def _fetch_new(self) -> List[Message]:
        after_id = self._cursor.last_seen_id
        try:
            token = await self._guard.acquire()
            batch = await self._api.messages_after(token, after_id)
        except TransientNetworkFailure as e:
            # 下一个 tick 会重试，不打断用户
            self._log(logging.WARNING, "Incremental fetch failed", code=e.code, after_id=after_id)
            return []
        except (AuthFailure, ApiError) as e:
            self._suspend(e)
            return []
        if self._state is not EngineState.LIVE:
            return []
        accepted = [m for m in batch if self._cursor.is_new(m.id)]
        if len(accepted) != len(batch):
            self._log(logging.DEBUG, "Dropped already consumed messages", after_id=after_id, dropped=len(batch) - len(accepted))
        if not accepted:
            return []
        self._sync_state.auto_scroll = self._sink.is_scrolled_to_bottom()
        self._sink.append(accepted)
        self._cursor.advance(accepted[-1].id)
        if self._sync_state.auto_scroll:
            self._sink.scroll_to_bottom()
        self._log(logging.DEBUG, "Appended new messages", count=len(accepted), cursor=self._cursor.last_seen_id)
        return accepted

    def _suspend(self, error: BusinessError) -> None:
        if self._state in (EngineState.SUSPENDED, EngineState.TERMINATED):
            return
        for timer in self.timers:
            timer.stop()
        self._state = EngineState.SUSPENDED
        self._log(logging.WARNING, "Engine suspended, re-authentication required", code=error.code)
        if self._on_auth_failure is not None:
            self._on_auth_failure(error)

    def _log(self, level: int, msg: str, **fields) -> None:
        logger.log(level, msg, extra={"extra": {"component": "sync_engine", "state": self._state.value, **fields}})
