"""在线列表与聚合计数轮询。

PresencePoller 以比消息轮询更慢的节奏运行，属于尽力而为的展示数据：
- 在线列表与两个计数请求相互独立，任一失败都不会阻塞其他请求。
- 失败只记录日志，绝不改变 SyncEngine 的状态，也不触发重新登录。
- 每次 refresh() 分配一个单调递增的序号，较早发起但较晚返回的响应会被丢弃，
  避免旧快照覆盖新快照。
"""

import asyncio
import logging
from typing import Optional

from chat_sync.api.client import ChatApiClient
from chat_sync.domain.exceptions import AuthFailure, BusinessError
from chat_sync.domain.models import ChatStats, PresenceSnapshot
from chat_sync.infrastructure.logging.logger import logger
from chat_sync.render.base import RenderSink
from chat_sync.sync.session_guard import SessionGuard


class PresencePoller:
    def __init__(self, api: ChatApiClient, guard: SessionGuard, sink: RenderSink):
        self._api = api
        self._guard = guard
        self._sink = sink
        self._snapshot: Optional[PresenceSnapshot] = None
        self._stats = ChatStats()
        self._issued = 0
        self._roster_seq = 0
        self._stats_seq = 0

    @property
    def snapshot(self) -> Optional[PresenceSnapshot]:
        return self._snapshot

    @property
    def stats(self) -> ChatStats:
        return self._stats

    async def refresh(self) -> None:
        self._issued += 1
        seq = self._issued
        try:
            token = await self._guard.acquire()
        except AuthFailure as e:
            self._log(logging.WARNING, "Presence refresh skipped, no valid token", seq=seq, code=e.code)
            return
        await asyncio.gather(self._refresh_roster(token, seq), self._refresh_stats(token, seq))

    async def _refresh_roster(self, token: str, seq: int) -> None:
        try:
            snapshot = await self._api.online_users(token)
        except BusinessError as e:
            self._log(logging.WARNING, "Online roster fetch failed", seq=seq, code=e.code)
            return
        if seq <= self._roster_seq:
            self._log(logging.DEBUG, "Dropped stale roster", seq=seq, applied=self._roster_seq)
            return
        self._roster_seq = seq
        self._snapshot = snapshot
        self._sink.update_presence(snapshot)

    async def _refresh_stats(self, token: str, seq: int) -> None:
        messages, users = await asyncio.gather(
            self._api.message_count(token),
            self._api.user_count(token),
            return_exceptions=True,
        )
        total_messages = self._stats.total_messages
        total_users = self._stats.total_users
        failed = 0
        for name, result in (("messages", messages), ("users", users)):
            if isinstance(result, BusinessError):
                failed += 1
                self._log(logging.WARNING, f"Count fetch failed: {name}", seq=seq, code=result.code)
            elif isinstance(result, BaseException):
                raise result
        if failed == 2:
            return
        if seq <= self._stats_seq:
            self._log(logging.DEBUG, "Dropped stale stats", seq=seq, applied=self._stats_seq)
            return
        if not isinstance(messages, BaseException):
            total_messages = messages
        if not isinstance(users, BaseException):
            total_users = users
        self._stats_seq = seq
        self._stats = ChatStats(total_messages=total_messages, total_users=total_users)
        self._sink.update_stats(self._stats)

    def _log(self, level: int, msg: str, **fields) -> None:
        logger.log(level, msg, extra={"extra": {"component": "presence", **fields}})
