from typing import List, Optional, Sequence

from chat_sync.domain.models import ChatStats, Message, PresenceSnapshot
from chat_sync.render.base import RenderSink


class MemoryRenderSink(RenderSink):
    """Keeps everything the engine renders in memory; used headless and in tests."""

    def __init__(self, at_bottom: bool = True):
        self.messages: List[Message] = []
        self.batches: List[List[Message]] = []
        self.presence: Optional[PresenceSnapshot] = None
        self.stats: Optional[ChatStats] = None
        self.at_bottom = at_bottom
        self.scroll_requests = 0
        self.replace_count = 0

    def replace_all(self, messages: Sequence[Message]) -> None:
        self.messages = list(messages)
        self.replace_count += 1

    def append(self, messages: Sequence[Message]) -> None:
        batch = list(messages)
        self.batches.append(batch)
        self.messages.extend(batch)

    def update_presence(self, snapshot: PresenceSnapshot) -> None:
        self.presence = snapshot

    def update_stats(self, stats: ChatStats) -> None:
        self.stats = stats

    def is_scrolled_to_bottom(self) -> bool:
        return self.at_bottom

    def scroll_to_bottom(self) -> None:
        self.scroll_requests += 1
        self.at_bottom = True

    @property
    def message_ids(self) -> List[int]:
        return [m.id for m in self.messages]
