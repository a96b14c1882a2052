"""会话守卫。

SessionGuard 独占本地 token，并且不信任任何本地缓存的有效性：
每次 acquire() 都会向服务端确认一次 token，被拒绝或校验失败时立即删除本地 token。
这样过期或被吊销的 token 最迟在一个轮询周期内被发现。

需要 token 的组件都通过注入的 SessionGuard 调用 acquire()，不直接读取存储。
"""

import logging
from typing import Optional

from chat_sync.api.client import ChatApiClient
from chat_sync.domain.exceptions import ApiError, AuthFailure, BusinessError, TransientNetworkFailure, ValidationFailure
from chat_sync.domain.models import Session, TokenValidity
from chat_sync.domain.session import TokenStore
from chat_sync.domain.validators import validate_registration
from chat_sync.infrastructure.logging.logger import logger

NETWORK_FAILURE_REASON = "Network error. Please try again later."


class SessionGuard:
    def __init__(self, api: ChatApiClient, store: TokenStore):
        self._api = api
        self._store = store
        self._session = Session(token=store.load())

    @property
    def session(self) -> Session:
        return self._session

    async def acquire(self) -> str:
        """返回经过服务端确认的 token，否则抛出 AuthFailure。"""

        token = self._store.load()
        if not token:
            self._session = Session(token=None, validity=TokenValidity.INVALID)
            raise AuthFailure(code="NO_TOKEN", message="Not logged in")
        try:
            ok = await self._api.check_token(token)
        except BusinessError as e:
            self._log(logging.WARNING, "Token check failed, expiring session", code=e.code)
            self.expire()
            raise AuthFailure(code="TOKEN_CHECK_FAILED", message=e.message)
        if not ok:
            self._log(logging.INFO, "Token rejected by server")
            self.expire()
            raise AuthFailure(code="TOKEN_REJECTED", message="Session expired, please log in again")
        self._session = Session(token=token, validity=TokenValidity.VALID)
        return token

    async def login(self, identity: str, secret: str) -> Session:
        try:
            data = await self._api.login(identity, secret)
        except (TransientNetworkFailure, ApiError) as e:
            self._log(logging.WARNING, "Login request failed", code=e.code)
            raise AuthFailure(code="NETWORK_ERROR", message=NETWORK_FAILURE_REASON)
        token = data.get("auth_token")
        if data.get("status") != "success" or not token:
            raise AuthFailure(code="LOGIN_FAILED", message=str(data.get("error") or "Login failed"))
        self._store.save(str(token))
        self._session = Session(token=str(token), validity=TokenValidity.UNKNOWN)
        self._log(logging.INFO, "Logged in", login=identity)
        return self._session

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
        """注册新账号；auto_login 时随后用同一组凭据登录。"""

        login = (login or "").strip()
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        errors = validate_registration(login, password, first_name, last_name, confirm_password)
        if errors:
            raise ValidationFailure(code="INVALID_REGISTRATION", message=", ".join(errors), errors=errors)
        try:
            data = await self._api.register(login, password, first_name, last_name)
        except TransientNetworkFailure as e:
            raise TransientNetworkFailure(code=e.code, message=NETWORK_FAILURE_REASON)
        if not (data.get("success") is True or data.get("status") == "success"):
            raise ApiError(code="REGISTER_FAILED", message=str(data.get("error") or "Registration failed"))
        self._log(logging.INFO, "Registered", login=login)
        if not auto_login:
            return None
        return await self.login(login, password)

    async def logout(self) -> None:
        """尽力通知服务端，然后无条件删除本地 token（包括请求失败、超时或被取消）。"""

        # 不经过 acquire()：无论 token 是否仍有效都要通知服务端并删除本地副本
        token = self._store.load()
        try:
            if token:
                await self._api.logout(token)
        except BusinessError as e:
            self._log(logging.WARNING, "Logout request failed, ignoring", code=e.code)
        finally:
            self.expire()

    def expire(self) -> None:
        self._store.clear()
        self._session = Session(token=None, validity=TokenValidity.INVALID)

    def _log(self, level: int, msg: str, **fields) -> None:
        logger.log(level, msg, extra={"extra": {"component": "session_guard", **fields}})
