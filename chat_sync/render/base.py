"""渲染层抽象接口。

同步引擎不关心消息如何变成像素，只依赖此协议：

- replace_all / append: 按服务端顺序整体替换或追加一批消息。
- update_presence / update_stats: 显示在线列表与聚合计数。
- is_scrolled_to_bottom / scroll_to_bottom: 引擎在追加前读取滚动位置，
  只有原本位于底部时才在追加后请求滚动到底部。

终端、桌面 GUI 或 Web 界面都可以实现该协议，而无需改动同步引擎。
"""

from typing import Protocol, Sequence

from chat_sync.domain.models import ChatStats, Message, PresenceSnapshot


class RenderSink(Protocol):
    def replace_all(self, messages: Sequence[Message]) -> None:
        ...

    def append(self, messages: Sequence[Message]) -> None:
        ...

    def update_presence(self, snapshot: PresenceSnapshot) -> None:
        ...

    def update_stats(self, stats: ChatStats) -> None:
        ...

    def is_scrolled_to_bottom(self) -> bool:
        ...

    def scroll_to_bottom(self) -> None:
        ...
