import asyncio

import pytest

from chat_sync.api.service import ChatService
from chat_sync.domain.exceptions import AuthFailure, BusinessError
from chat_sync.domain.models import EngineState
from chat_sync.infrastructure.storage.token_store import MemoryTokenStore


class DummySettings:
    history_limit = 50
    message_poll_interval = 0.01
    presence_poll_interval = 0.02
    storage_root = ".storage"


@pytest.mark.asyncio
async def test_start_runs_full_bootstrap(api, sink):
    api.post("hello")
    service = ChatService(sink, api=api, store=MemoryTokenStore(), cfg=DummySettings())
    await service.login("alice", "secret1")
    user = await service.start()
    assert user.login == "alice"
    assert sink.message_ids == [1]
    assert sink.presence is not None
    assert sink.stats.total_messages == 1
    assert service.engine.state is EngineState.LIVE
    assert all(t.running for t in service.engine.timers)
    assert ("history", "tok-alice", 50) in api.calls

    await service.send("mine")
    assert sink.message_ids == [1, 2]
    await service.close()
    assert service.engine.state is EngineState.TERMINATED


@pytest.mark.asyncio
async def test_start_requires_login(api, sink):
    service = ChatService(sink, api=api, store=MemoryTokenStore(), cfg=DummySettings())
    with pytest.raises(AuthFailure):
        await service.start()
    assert service.engine.state is EngineState.UNINITIALIZED


@pytest.mark.asyncio
async def test_session_lost_expires_token_and_notifies(api, sink, server_error):
    lost = []
    store = MemoryTokenStore()
    service = ChatService(sink, api=api, store=store, cfg=DummySettings(), on_session_lost=lost.append)
    await service.login("alice", "secret1")
    await service.start()
    api.fail("messages_after", server_error)
    await service.engine.poll_incremental()
    assert service.engine.state is EngineState.SUSPENDED
    assert store.load() is None
    assert lost and lost[0].code == "API_ERROR"
    await service.close()


@pytest.mark.asyncio
async def test_logout_stops_engine_and_clears_token(api, sink, server_error):
    store = MemoryTokenStore()
    service = ChatService(sink, api=api, store=store, cfg=DummySettings())
    await service.login("alice", "secret1")
    await service.start()
    api.fail("logout", server_error)
    await service.logout()
    assert store.load() is None
    assert service.current_user is None
    assert not any(t.running for t in service.engine.timers)
    await service.close()


@pytest.mark.asyncio
async def test_close_during_start_aborts_bootstrap(api, sink):
    service = ChatService(sink, api=api, store=MemoryTokenStore(), cfg=DummySettings())
    await service.login("alice", "secret1")
    gate = api.gate("history")
    starting = asyncio.create_task(service.start())
    while api.count("history") < 1:
        await asyncio.sleep(0)
    await service.close()
    gate.set()
    with pytest.raises(BusinessError) as exc_info:
        await starting
    assert exc_info.value.code == "SESSION_CLOSED"
    assert service.engine.state is EngineState.TERMINATED
    assert api.count("online_users") == 0
    assert sink.presence is None
    assert not any(t.running for t in service.engine.timers)
