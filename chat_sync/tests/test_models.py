from datetime import timezone, timedelta

from chat_sync.domain.cursor import Cursor
from chat_sync.domain.models import Message, PresenceSnapshot, UserProfile
from chat_sync.domain.validators import normalize_message_text, validate_login, validate_name, validate_password


def test_cursor_only_moves_forward():
    c = Cursor()
    assert c.last_seen_id == 0
    assert c.advance(5)
    assert not c.advance(3)
    assert not c.advance(5)
    assert c.last_seen_id == 5
    assert c.is_new(6) and not c.is_new(5)


def test_message_from_payload_and_time():
    m = Message.from_payload(
        {
            "id": "3",
            "message_text": "hey",
            "timestamp": "2024-05-01 22:30:00",
            "user": {"id": 2, "login": "bob", "first_name": "Bob", "last_name": ""},
        }
    )
    assert m.id == 3
    assert m.sender.display_name == "Bob"
    assert m.format_time(timezone.utc) == "22:30"
    assert m.format_time(timezone(timedelta(hours=3))) == "01:30"
    assert Message(id=1, sender=m.sender, text="x", timestamp="garbage").format_time() == ""


def test_avatar_text():
    assert UserProfile(id=1, login="a", first_name="alice", last_name="smith").avatar_text == "AS"
    assert UserProfile(id=1, login="a", first_name="bob", last_name="").avatar_text == "BO"
    assert UserProfile(id=1, login="zed").avatar_text == "ZE"


def test_presence_snapshot_defaults_total_to_roster_size():
    snap = PresenceSnapshot.from_payload({"online_users": [{"id": 1, "login": "a"}, {"id": 2, "login": "b"}]})
    assert snap.total_online == 2
    assert snap.online_logins == {"a", "b"}


def test_validators():
    assert validate_login("user_01")
    assert not validate_login("ab")
    assert not validate_login("bad-name")
    assert validate_password("123456")
    assert not validate_password("12345")
    assert validate_name("Al")
    assert not validate_name("A" * 51)
    assert normalize_message_text("  hi \n") == "hi"
    assert normalize_message_text(None) == ""
