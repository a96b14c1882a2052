import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from chat_sync.domain.exceptions import ApiError, TransientNetworkFailure
from chat_sync.domain.models import Message, PresenceSnapshot, UserProfile
from chat_sync.infrastructure.storage.token_store import MemoryTokenStore
from chat_sync.render.memory import MemoryRenderSink

ALICE = UserProfile(id=1, login="alice", first_name="Alice", last_name="Smith")
BOB = UserProfile(id=2, login="bob", first_name="Bob", last_name="Brown")


def make_message(mid: int, text: str = "", sender: UserProfile = ALICE) -> Message:
    return Message(id=mid, sender=sender, text=text or f"m{mid}", timestamp="2024-05-01 10:00:00")


class FakeChatApi:
    """In-process stand-in for ChatApiClient backed by a list of server messages."""

    def __init__(self):
        self.valid_tokens = {"tok"}
        self.users = {"alice": ("secret1", ALICE)}
        self.messages: List[Message] = []
        self.roster = PresenceSnapshot(users=(ALICE, BOB), total_online=2)
        self.message_total = 0
        self.user_total = 2
        self.calls: List[tuple] = []
        self.failures: Dict[str, List[Exception]] = {}
        self.gates: Dict[str, List[Tuple[asyncio.Event, Optional[Exception]]]] = {}
        self.reorder_batches: Optional[List[List[Message]]] = None

    def fail(self, name: str, exc: Exception, times: int = 1) -> None:
        self.failures.setdefault(name, []).extend([exc] * times)

    def gate(self, name: str, raises: Optional[Exception] = None) -> asyncio.Event:
        """Hold the next call to `name` until the event is set, then optionally fail it."""
        event = asyncio.Event()
        self.gates.setdefault(name, []).append((event, raises))
        return event

    def post(self, text: str, sender: UserProfile = BOB) -> Message:
        mid = (self.messages[-1].id if self.messages else 0) + 1
        m = make_message(mid, text, sender)
        self.messages.append(m)
        self.message_total += 1
        return m

    async def _enter(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        pending = self.failures.get(name)
        if pending:
            raise pending.pop(0)

    async def _wait_gate(self, name: str) -> None:
        gates = self.gates.get(name)
        if gates:
            event, exc = gates.pop(0)
            await event.wait()
            if exc is not None:
                raise exc

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    async def check_token(self, token):
        await self._enter("check_token", token)
        return token in self.valid_tokens

    async def login(self, login, password):
        await self._enter("login", login)
        entry = self.users.get(login)
        if entry is None or entry[0] != password:
            return {"error": "Invalid login or password"}
        self.valid_tokens.add(f"tok-{login}")
        return {"status": "success", "auth_token": f"tok-{login}"}

    async def register(self, login, password, first_name, last_name):
        await self._enter("register", login)
        if login in self.users:
            return {"success": False, "error": "User already exists"}
        profile = UserProfile(id=len(self.users) + 1, login=login, first_name=first_name, last_name=last_name)
        self.users[login] = (password, profile)
        return {"status": "success"}

    async def logout(self, token):
        await self._enter("logout", token)
        self.valid_tokens.discard(token)

    async def current_user(self, token):
        await self._enter("current_user", token)
        return ALICE

    async def history(self, token, limit):
        await self._enter("history", token, limit)
        batch = list(self.messages[-limit:])
        await self._wait_gate("history")
        return batch

    async def messages_after(self, token, after_id):
        await self._enter("messages_after", token, after_id)
        batch = [m for m in self.messages if m.id > after_id]
        await self._wait_gate("messages_after")
        return batch

    async def send_message(self, token, text):
        await self._enter("send_message", token, text)
        self.post(text, sender=ALICE)

    async def online_users(self, token):
        await self._enter("online_users", token)
        await self._wait_gate("online_users")
        return self.roster

    async def message_count(self, token):
        await self._enter("message_count", token)
        return self.message_total

    async def user_count(self, token):
        await self._enter("user_count", token)
        return self.user_total


@pytest.fixture
def api():
    return FakeChatApi()


@pytest.fixture
def store():
    return MemoryTokenStore("tok")


@pytest.fixture
def sink():
    return MemoryRenderSink()


@pytest.fixture
def network_error():
    return TransientNetworkFailure(code="NETWORK_ERROR", message="timed out")


@pytest.fixture
def server_error():
    return ApiError(code="API_ERROR", message="boom", http_status=500)
