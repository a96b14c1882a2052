import tempfile
from pathlib import Path

import pytest

from chat_sync.domain.exceptions import BusinessError
from chat_sync.infrastructure.storage.token_store import JsonTokenStore


def test_json_token_store_roundtrip_and_clear():
    with tempfile.TemporaryDirectory() as d:
        store = JsonTokenStore(root=Path(d) / ".storage")
        assert store.load() is None
        store.save("abc")
        assert store.path.exists()
        assert JsonTokenStore(root=Path(d) / ".storage").load() == "abc"
        store.clear()
        assert store.load() is None
        store.clear()
        assert not list(store.path.parent.glob("*.tmp"))


def test_json_token_store_corrupt_file():
    with tempfile.TemporaryDirectory() as d:
        store = JsonTokenStore(root=Path(d))
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BusinessError) as exc:
            store.load()
        assert exc.value.code == "STORE_READ_ERROR"
