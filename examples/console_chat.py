"""Minimal terminal chat built on ChatService.

Usage: python examples/console_chat.py <login> <password>
Lines typed on stdin are sent; an empty line or EOF logs out.
"""

import asyncio
import sys
from typing import Optional, Sequence

from chat_sync import ChatService
from chat_sync.domain.exceptions import BusinessError
from chat_sync.domain.models import ChatStats, Message, PresenceSnapshot


class ConsoleRenderSink:
    def __init__(self) -> None:
        self.own_user_id: Optional[int] = None

    def replace_all(self, messages: Sequence[Message]) -> None:
        print("-" * 40)
        if not messages:
            print("No messages yet. Be the first!")
        self.append(messages)

    def append(self, messages: Sequence[Message]) -> None:
        for m in messages:
            marker = "*" if m.sender.id == self.own_user_id else " "
            print(f"{marker}[{m.format_time()}] {m.sender.avatar_text} {m.sender.display_name}: {m.text}")

    def update_presence(self, snapshot: PresenceSnapshot) -> None:
        print(f"  online ({snapshot.total_online}): {', '.join(sorted(snapshot.online_logins))}")

    def update_stats(self, stats: ChatStats) -> None:
        print(f"  messages: {stats.total_messages}  users: {stats.total_users}")

    def is_scrolled_to_bottom(self) -> bool:
        return True

    def scroll_to_bottom(self) -> None:
        pass


async def main(login: str, password: str) -> None:
    sink = ConsoleRenderSink()
    service = ChatService(sink, on_session_lost=lambda e: print(f"Session lost: {e.message}"))
    await service.login(login, password)
    user = await service.start()
    sink.own_user_id = user.id
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line.strip():
                break
            try:
                await service.send(line)
            except BusinessError as e:
                print(f"Send failed ({e.code}): {e.message}")
    finally:
        await service.logout()
        await service.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
