"""聊天服务 HTTP 适配器。

本模块负责：

1. 把同步引擎需要的操作映射为聊天服务的 HTTP 接口。
2. 按配置附加 token 请求头（自定义头或 Bearer 方案）。
3. 把网络异常、非 2xx 响应、无法解析的 JSON 统一转换为业务异常。
4. 将响应 JSON 解析为 Message / UserProfile / PresenceSnapshot 等模型。

上层组件（SessionGuard、SyncEngine、PresencePoller）只依赖这里的协程，
不直接接触 httpx。
"""

from typing import Any, Dict, List, Optional

import httpx

from chat_sync.config.settings import settings
from chat_sync.domain.exceptions import ApiError, TransientNetworkFailure
from chat_sync.domain.models import Message, PresenceSnapshot, ServerStatus, UserProfile


class ChatApiClient:
    """聊天服务客户端。每次调用使用独立的 AsyncClient，允许调用之间任意重叠。"""

    def __init__(self, cfg=settings):
        self._settings = cfg

    # ---- 认证 ----

    async def login(self, login: str, password: str) -> Dict[str, Any]:
        """提交凭据。服务端在响应体里报告失败，因此非 2xx 也返回解析后的 JSON。"""

        resp = await self._request("POST", "/api/auth/login", json={"login": login, "password": password})
        return self._json(resp, allow_error_status=True)

    async def register(self, login: str, password: str, first_name: str, last_name: str) -> Dict[str, Any]:
        payload = {
            "login": login,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
        }
        resp = await self._request("POST", "/api/auth/register", json=payload)
        return self._json(resp, allow_error_status=True)

    async def logout(self, token: str) -> None:
        await self._request("POST", "/api/auth/logout", token=token)

    async def check_token(self, token: str) -> bool:
        resp = await self._request("POST", "/api/check_token", json={"token": token})
        if resp.status_code != 200:
            raise ApiError(code="TOKEN_CHECK_FAILED", message=resp.text, http_status=resp.status_code)
        return self._json(resp).get("check_status") is True

    # ---- 用户与统计 ----

    async def alive(self) -> ServerStatus:
        data = self._json(await self._request("GET", "/api/alive"))
        return ServerStatus(
            status=str(data.get("status") or ""),
            started_at=str(data.get("started_at") or ""),
            timestamp=str(data.get("timestamp") or ""),
        )

    async def current_user(self, token: str) -> UserProfile:
        data = self._json(await self._request("GET", "/api/users/me", token=token))
        return UserProfile.from_payload(data)

    async def online_users(self, token: str) -> PresenceSnapshot:
        data = self._json(await self._request("GET", "/api/users/online", token=token))
        return PresenceSnapshot.from_payload(data)

    async def message_count(self, token: str) -> int:
        return self._count(await self._request("GET", "/api/messages/count", token=token))

    async def user_count(self, token: str) -> int:
        return self._count(await self._request("GET", "/api/users/count", token=token))

    # ---- 消息 ----

    async def history(self, token: str, limit: int) -> List[Message]:
        resp = await self._request("GET", "/api/messages", token=token, params={"limit": limit})
        return self._messages(resp)

    async def messages_after(self, token: str, after_id: int) -> List[Message]:
        resp = await self._request("GET", "/api/messages/new", token=token, params={"after_id": after_id})
        return self._messages(resp)

    async def send_message(self, token: str, text: str) -> None:
        resp = await self._request("POST", "/api/messages", token=token, json={"message_text": text})
        if not resp.is_success:
            raise ApiError(code="SEND_FAILED", message=resp.text, http_status=resp.status_code)

    # ---- 辅助方法 ----

    def auth_headers(self, token: str) -> Dict[str, str]:
        scheme = (getattr(self._settings, "token_scheme", "") or "").strip()
        value = f"{scheme} {token}" if scheme else token
        return {self._settings.token_header: value}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers.update(self.auth_headers(token))
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.request(
                    method,
                    f"{self._settings.base_url}{path}",
                    json=json,
                    params=params,
                    headers=headers,
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise TransientNetworkFailure(code="NETWORK_ERROR", message=str(e) or type(e).__name__, path=path)
        return resp

    @staticmethod
    def _json(resp: httpx.Response, allow_error_status: bool = False) -> Dict[str, Any]:
        if resp.status_code >= 400 and not allow_error_status:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise ApiError(code="BAD_RESPONSE", message="Response is not valid JSON", http_status=resp.status_code)
        if not isinstance(data, dict):
            raise ApiError(code="BAD_RESPONSE", message="Response is not a JSON object", http_status=resp.status_code)
        return data

    def _messages(self, resp: httpx.Response) -> List[Message]:
        data = self._json(resp)
        try:
            return [Message.from_payload(m) for m in data.get("messages") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(code="BAD_RESPONSE", message=f"Malformed message: {e}", http_status=resp.status_code)

    def _count(self, resp: httpx.Response) -> int:
        data = self._json(resp)
        try:
            return int(data["count"])
        except (KeyError, TypeError, ValueError):
            raise ApiError(code="BAD_RESPONSE", message="Missing count", http_status=resp.status_code)
