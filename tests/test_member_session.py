"""Tests for the member session state machine (app/services/member_session.py)"""
import asyncio
import json
import threading
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from app.exceptions import NotFoundError, TransientError, ValidationError
from app.models.buyer import AccessType
from app.models.course import CourseAccessLevel
from app.services.buyers import BuyerRecord
from app.services.member_session import (
    MemorySessionStorage,
    RedisSessionStorage,
    SessionRegistry,
    SessionState,
    SessionStore,
)
from tests.helpers import FakeClock, run


def _record(email="buyer@test.com", tier=AccessType.BASIC):
    return BuyerRecord(email=email, name="Buyer", access_type=tier)


def _store(lookup=None, clock=None, storage=None):
    return SessionStore(
        storage=storage or MemorySessionStorage(),
        lookup=lookup or AsyncMock(return_value=_record()),
        clock=clock or FakeClock(),
    )


class TestLogin:
    def test_login_success_persists_and_authenticates(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        store = _store(clock=clock, storage=storage)

        result = run(store.login("buyer@test.com"))

        assert result.success is True
        assert store.state == SessionState.AUTHENTICATED
        assert store.current_tier == AccessType.BASIC
        persisted = storage.read()
        assert persisted.email == "buyer@test.com"
        assert persisted.established_at == clock.now

    def test_login_normalizes_email(self):
        lookup = AsyncMock(return_value=_record())
        store = _store(lookup=lookup)

        run(store.login("  Buyer@Test.COM "))

        lookup.assert_awaited_once_with("buyer@test.com")
        assert store.email == "buyer@test.com"

    def test_invalid_email_never_calls_lookup(self):
        lookup = AsyncMock()
        store = _store(lookup=lookup)

        result = run(store.login("not-an-email"))

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert result.message == "Invalid email format."
        assert store.state == SessionState.ANONYMOUS
        lookup.assert_not_awaited()

    def test_unknown_email_stays_anonymous(self):
        storage = MemorySessionStorage()
        store = _store(lookup=AsyncMock(return_value=None), storage=storage)

        result = run(store.login("ghost@test.com"))

        assert isinstance(result.error, NotFoundError)
        assert store.state == SessionState.ANONYMOUS
        assert storage.read() is None

    def test_backend_error_is_reported_not_raised(self):
        store = _store(lookup=AsyncMock(side_effect=ConnectionError("db down")))

        result = run(store.login("buyer@test.com"))

        assert isinstance(result.error, TransientError)
        assert store.state == SessionState.ANONYMOUS
        assert store.last_error is result.error

    def test_login_messages_differ_per_failure(self):
        invalid = run(_store().login("bad"))
        missing = run(_store(lookup=AsyncMock(return_value=None)).login("a@b.co"))
        broken = run(_store(lookup=AsyncMock(side_effect=RuntimeError)).login("a@b.co"))

        assert len({invalid.message, missing.message, broken.message}) == 3


class TestLoad:
    def test_fresh_instance_is_unknown(self):
        assert _store().state == SessionState.UNKNOWN

    def test_load_without_persisted_session_is_anonymous(self):
        lookup = AsyncMock()
        store = _store(lookup=lookup)

        assert run(store.load()) == SessionState.ANONYMOUS
        lookup.assert_not_awaited()

    def test_load_rederives_tier_from_store(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("buyer@test.com", clock.now)
        lookup = AsyncMock(return_value=_record(tier=AccessType.PRO))
        store = _store(lookup=lookup, clock=clock, storage=storage)

        assert run(store.load()) == SessionState.AUTHENTICATED
        assert store.current_tier == AccessType.PRO
        assert store.can_access(CourseAccessLevel.PRO) is True

    def test_tier_change_only_visible_after_load(self):
        clock = FakeClock()
        lookup = AsyncMock(return_value=_record(tier=AccessType.BASIC))
        store = _store(lookup=lookup, clock=clock)
        run(store.login("buyer@test.com"))

        lookup.return_value = _record(tier=AccessType.PRO)
        assert store.current_tier == AccessType.BASIC

        run(store.load())
        assert store.current_tier == AccessType.PRO

    def test_expired_session_cleared_without_lookup(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("buyer@test.com", clock.now)
        clock.advance(timedelta(days=7, milliseconds=1))
        lookup = AsyncMock()
        store = _store(lookup=lookup, clock=clock, storage=storage)

        assert run(store.load()) == SessionState.ANONYMOUS
        assert storage.read() is None
        lookup.assert_not_awaited()

    def test_session_just_inside_window_is_kept(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("buyer@test.com", clock.now)
        clock.advance(timedelta(days=7) - timedelta(milliseconds=1))
        store = _store(clock=clock, storage=storage)

        assert run(store.load()) == SessionState.AUTHENTICATED

    def test_lookup_miss_drops_to_anonymous(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("gone@test.com", clock.now)
        store = _store(lookup=AsyncMock(return_value=None), clock=clock, storage=storage)

        assert run(store.load()) == SessionState.ANONYMOUS
        assert isinstance(store.last_error, NotFoundError)

    def test_lookup_error_drops_to_anonymous(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("buyer@test.com", clock.now)
        store = _store(lookup=AsyncMock(side_effect=TimeoutError()), clock=clock, storage=storage)

        assert run(store.load()) == SessionState.ANONYMOUS
        assert isinstance(store.last_error, TransientError)


class TestExpiryOnInspection:
    def test_cached_session_expires_when_inspected(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        store = _store(clock=clock, storage=storage)
        run(store.login("buyer@test.com"))

        clock.advance(timedelta(days=7, milliseconds=1))

        assert store.is_authenticated is False
        assert store.current_tier is None
        assert storage.read() is None

    def test_activity_does_not_extend_session(self):
        clock = FakeClock()
        store = _store(clock=clock)
        run(store.login("buyer@test.com"))

        for _ in range(6):
            clock.advance(timedelta(days=1))
            run(store.load())
        assert store.is_authenticated is True

        clock.advance(timedelta(days=1))
        run(store.load())
        assert store.state == SessionState.ANONYMOUS


class TestLogout:
    def test_logout_clears_everything(self):
        storage = MemorySessionStorage()
        store = _store(storage=storage)
        run(store.login("buyer@test.com"))

        store.logout()

        assert store.state == SessionState.ANONYMOUS
        assert store.email is None
        assert store.current_tier is None
        assert storage.read() is None

    def test_logout_when_anonymous_is_harmless(self):
        store = _store()
        store.logout()
        assert store.state == SessionState.ANONYMOUS

    def test_logout_wins_over_inflight_load(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        storage.write("buyer@test.com", clock.now)

        async def scenario():
            gate = asyncio.Event()

            async def slow_lookup(email):
                await gate.wait()
                return _record()

            store = _store(lookup=slow_lookup, clock=clock, storage=storage)
            task = asyncio.create_task(store.load())
            await asyncio.sleep(0)
            store.logout()
            gate.set()
            await task
            return store

        store = run(scenario())
        assert store.state == SessionState.ANONYMOUS
        assert storage.read() is None

    def test_logout_wins_over_inflight_login(self):
        storage = MemorySessionStorage()

        async def scenario():
            gate = asyncio.Event()

            async def slow_lookup(email):
                await gate.wait()
                return _record()

            store = _store(lookup=slow_lookup, storage=storage)
            task = asyncio.create_task(store.login("buyer@test.com"))
            await asyncio.sleep(0)
            store.logout()
            gate.set()
            return store, await task

        store, result = run(scenario())
        assert result.success is False
        assert store.state == SessionState.ANONYMOUS
        assert storage.read() is None


class TestRedisSessionStorage:
    def test_write_is_single_set_with_ttl(self):
        redis = MagicMock()
        clock = FakeClock()
        storage = RedisSessionStorage(redis, "tok123", prefix="member_session")

        storage.write("buyer@test.com", clock.now)

        redis.set.assert_called_once()
        key, value = redis.set.call_args.args
        assert key == "member_session:tok123"
        assert json.loads(value)["email"] == "buyer@test.com"
        assert redis.set.call_args.kwargs["ex"] == 7 * 24 * 3600

    def test_read_round_trip(self):
        redis = MagicMock()
        clock = FakeClock()
        storage = RedisSessionStorage(redis, "tok123")
        storage.write("buyer@test.com", clock.now)
        redis.get.return_value = redis.set.call_args.args[1]

        persisted = storage.read()

        assert persisted.email == "buyer@test.com"
        assert persisted.established_at == clock.now

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "not json",
        json.dumps({"email": "buyer@test.com"}),
        json.dumps({"established_at": 1700000000000}),
        json.dumps(["buyer@test.com"]),
    ])
    def test_partial_or_corrupt_value_reads_as_absent(self, raw):
        redis = MagicMock()
        redis.get.return_value = raw
        assert RedisSessionStorage(redis, "tok").read() is None

    def test_clear_deletes_key(self):
        redis = MagicMock()
        RedisSessionStorage(redis, "tok").clear()
        redis.delete.assert_called_once_with("member_session:tok")


class TestSessionRegistry:
    def test_put_get_discard(self):
        reg = SessionRegistry()
        store = _store()
        reg.put("t", store)
        assert reg.get("t") is store
        assert reg.discard("t") is store
        assert reg.get("t") is None

    def test_len_counts_held_stores(self):
        reg = SessionRegistry()
        reg.put("a", _store())
        reg.put("b", _store())
        reg.discard("a")
        assert len(reg) == 1


class TestFailedLoginOnAuthenticatedStore:
    def _authenticated(self, lookup):
        storage = MemorySessionStorage()
        store = _store(lookup=lookup, storage=storage)
        assert run(store.login("buyer@test.com")).success
        return store, storage

    def test_unknown_email_drops_previous_session_everywhere(self):
        lookup = AsyncMock(return_value=_record())
        store, storage = self._authenticated(lookup)
        lookup.return_value = None

        run(store.login("other@test.com"))

        assert store.state == SessionState.ANONYMOUS
        assert storage.read() is None

    def test_reload_after_failed_login_stays_anonymous(self):
        lookup = AsyncMock(return_value=_record())
        store, storage = self._authenticated(lookup)

        run(store.login("not-an-email"))
        lookup.return_value = _record()

        assert run(store.load()) == SessionState.ANONYMOUS
        assert store.email is None


class TestExpireIfStale:
    def test_expired_store_is_cleared(self):
        clock = FakeClock()
        storage = MemorySessionStorage()
        store = _store(clock=clock, storage=storage)
        run(store.login("buyer@test.com"))
        clock.advance(timedelta(days=7))

        assert run(store.expire_if_stale()) is True
        assert store.state == SessionState.ANONYMOUS
        assert storage.read() is None

    def test_fresh_store_is_untouched(self):
        clock = FakeClock()
        store = _store(clock=clock)
        run(store.login("buyer@test.com"))
        clock.advance(timedelta(days=6))

        assert run(store.expire_if_stale()) is False
        assert store.is_authenticated is True


class TestStorageOffLoop:
    def test_storage_io_runs_in_threadpool(self):
        loop_thread = threading.get_ident()

        class RecordingStorage(MemorySessionStorage):
            def __init__(self):
                super().__init__()
                self.threads = []

            def read(self):
                self.threads.append(threading.get_ident())
                return super().read()

            def write(self, email, established_at):
                self.threads.append(threading.get_ident())
                super().write(email, established_at)

        storage = RecordingStorage()
        store = _store(storage=storage)
        run(store.login("buyer@test.com"))
        run(store.load())

        assert len(storage.threads) == 2
        assert loop_thread not in storage.threads
