# tests/test_session.py
import pytest

from legaldocs.errors import Busy, NotAuthenticated
from legaldocs.session import SessionContext, SessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_same_subject_gets_same_context():
    registry = SessionRegistry()
    assert registry.get("u1") is registry.get("u1")
    assert len(registry) == 1


def test_idle_sessions_are_dropped():
    clock = FakeClock()
    registry = SessionRegistry(idle_ttl=60, clock=clock)
    first = registry.get("u1")
    first.documents_processed = True
    registry.get("u2")

    clock.now += 30
    registry.get("u2")
    clock.now += 45
    # u1 idle for 75s, u2 for 45s
    registry.get("u3")
    assert "u1" not in registry
    assert "u2" in registry

    again = registry.get("u1")
    assert again is not first
    assert again.documents_processed is False


def test_registry_is_capped_least_recently_used_first():
    registry = SessionRegistry(max_sessions=2)
    registry.get("u1")
    registry.get("u2")
    registry.get("u1")
    registry.get("u3")
    assert len(registry) == 2
    assert "u2" not in registry
    assert "u1" in registry and "u3" in registry


def test_end_drops_the_session():
    registry = SessionRegistry()
    registry.get("u1")
    assert registry.end("u1") is True
    assert registry.end("u1") is False
    assert len(registry) == 0


def test_require_user_message():
    with pytest.raises(NotAuthenticated) as exc:
        SessionContext(user_id=None).require_user()
    assert exc.value.message == "User must be logged in"


def test_in_flight_refuses_reentry_and_resets():
    ctx = SessionContext(user_id="u1")
    with ctx.in_flight("uploading", "busy"):
        assert ctx.uploading is True
        with pytest.raises(Busy):
            with ctx.in_flight("uploading", "busy"):
                pass
    assert ctx.uploading is False
