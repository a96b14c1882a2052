from typing import Optional, Protocol


class TokenStore(Protocol):
    """本地 token 持久化（对应浏览器的 localStorage）。

    只有 SessionGuard 读写它，其他组件一律通过 SessionGuard.acquire() 获取 token。
    """

    def load(self) -> Optional[str]:
        ...

    def save(self, token: str) -> None:
        ...

    def clear(self) -> None:
        ...
