"""Tests for the member portal (app/routers/member.py)"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from app.models.announcement import Announcement, AnnouncementRead
from app.models.buyer import AccessType, Buyer
from app.models.course import Course, CourseAccessLevel
from app.models.enrollment import Enrollment
from app.services.buyers import BuyerRecord
from app.services.member_session import MemorySessionStorage, SessionStore, registry
from app.auth.member import open_session_store
from tests.helpers import FakeClock, run


def _fresh_store(lookup):
    return SessionStore(storage=MemorySessionStorage(), lookup=lookup, clock=FakeClock())


@pytest.fixture
def limiter():
    with patch("app.routers.member.member_login_limiter") as mock_limiter:
        mock_limiter.is_blocked.return_value = False
        mock_limiter.window_minutes = 15
        yield mock_limiter


class TestMemberLogin:
    def test_login_issues_token_and_session(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock(return_value=BuyerRecord("x@y.com", "X", AccessType.PRO)))

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            response = client.post("/member/login", json={"email": " X@Y.com "})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["session"]["email"] == "x@y.com"
        assert data["session"]["access_type"] == "pro"
        assert data["session"]["has_pro_access"] is True
        limiter.reset.assert_called_once()

    def test_unknown_email_is_404_and_counted(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock(return_value=None))

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            response = client.post("/member/login", json={"email": "ghost@y.com"})

        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()
        limiter.record_failed_attempt.assert_called_once_with("ghost@y.com")

    def test_invalid_email_is_400(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock())

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            response = client.post("/member/login", json={"email": "nope"})

        assert response.status_code == 400

    def test_backend_failure_is_503(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock(side_effect=ConnectionError()))

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            response = client.post("/member/login", json={"email": "x@y.com"})

        assert response.status_code == 503

    def test_blocked_is_429(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        limiter.is_blocked.return_value = True
        assert client.post("/member/login", json={"email": "x@y.com"}).status_code == 429


class TestSessionAndLogout:
    def test_session_without_header_is_anonymous(self, unauthenticated_client):
        client, _ = unauthenticated_client
        assert client.get("/member/session").json()["state"] == "anonymous"

    def test_session_forces_reload(self, unauthenticated_client):
        client, _ = unauthenticated_client
        store = Mock()
        store.is_authenticated = False
        opener = AsyncMock(return_value=store)

        with patch("app.routers.member.open_session_store", opener):
            client.get("/member/session", headers={"X-Member-Session": "tok"})

        opener.assert_awaited_once_with("tok", reload=True)

    def test_logout_clears_cached_store(self, unauthenticated_client):
        client, _ = unauthenticated_client
        store = MagicMock()
        registry.put("tok", store)

        response = client.post("/member/logout", headers={"X-Member-Session": "tok"})

        assert response.status_code == 204
        store.logout.assert_called_once()
        assert registry.get("tok") is None


class TestProfile:
    def test_requires_member(self, unauthenticated_client):
        client, _ = unauthenticated_client
        assert client.get("/member/profile").status_code == 401

    def test_get_profile(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.first.return_value = Buyer(
            email="member@test.com", name="Member", product_title="Course", access_type=AccessType.BASIC
        )

        response = client.get("/member/profile")

        assert response.status_code == 200
        assert response.json()["name"] == "Member"

    def test_update_name_only(self, client_with_member):
        client, mock_db, _ = client_with_member
        buyer = Buyer(email="member@test.com", name="Old", product_title="Course", access_type=AccessType.BASIC)
        mock_db.first.return_value = buyer

        response = client.patch("/member/profile", json={"name": " New ", "access_type": "pro"})

        assert response.status_code == 200
        assert buyer.name == "New"
        assert buyer.access_type == AccessType.BASIC


class TestEnrollments:
    def _course(self, access_level=CourseAccessLevel.BASIC):
        return Course(id=2, title="C", is_published=True, access_level=access_level, order_index=0)

    def test_enroll(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.first.side_effect = [self._course(), None]
        mock_db.refresh = Mock(side_effect=lambda e: setattr(e, "id", 1))

        response = client.post("/member/enrollments", json={"course_id": 2})

        assert response.status_code == 201
        added = mock_db.add.call_args.args[0]
        assert added.buyer_email == "member@test.com"
        assert added.course_id == 2

    def test_duplicate_enroll_is_400(self, client_with_member):
        client, mock_db, _ = client_with_member
        existing = Enrollment(id=1, buyer_email="member@test.com", course_id=2)
        mock_db.first.side_effect = [self._course(), existing]

        assert client.post("/member/enrollments", json={"course_id": 2}).status_code == 400

    def test_cannot_enroll_above_tier(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.first.side_effect = [self._course(CourseAccessLevel.PRO)]

        assert client.post("/member/enrollments", json={"course_id": 2}).status_code == 403

    def test_unenroll_missing_404(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.first.return_value = None
        assert client.delete("/member/enrollments/2").status_code == 404


class TestMemberAnnouncements:
    def test_list_marks_read_state(self, client_with_member):
        client, mock_db, _ = client_with_member
        published_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
        announcements = [
            Announcement(id=1, title="A", content="a", is_published=True, published_at=published_at),
            Announcement(id=2, title="B", content="b", is_published=True, published_at=published_at),
        ]
        reads = [AnnouncementRead(announcement_id=2, buyer_email="member@test.com")]
        mock_db.all.side_effect = [announcements, reads]

        data = client.get("/member/announcements").json()

        assert {a["id"]: a["is_read"] for a in data} == {1: False, 2: True}

    def test_unread_count(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.scalar.side_effect = [5, 2]

        assert client.get("/member/announcements/unread-count").json() == {"unread": 3}

    def test_mark_read_is_idempotent(self, client_with_member):
        client, mock_db, _ = client_with_member
        announcement = Announcement(id=1, title="A", content="a", is_published=True)
        existing = AnnouncementRead(announcement_id=1, buyer_email="member@test.com")
        mock_db.first.side_effect = [announcement, None, announcement, existing]

        first = client.post("/member/announcements/1/read")
        second = client.post("/member/announcements/1/read")

        assert first.status_code == second.status_code == 204
        assert mock_db.add.call_count == 1


class TestOpenSessionStore:
    def _opener(self, lookup, storage=None):
        def build(token):
            return SessionStore(storage=storage or MemorySessionStorage(), lookup=lookup, clock=FakeClock())
        return patch("app.auth.member.build_session_store", side_effect=build)

    def test_unknown_tokens_are_not_cached(self):
        with self._opener(AsyncMock()):
            for i in range(50):
                store = run(open_session_store(f"random-{i}"))
                assert store.is_authenticated is False

        assert len(registry) == 0

    def test_authenticated_store_is_cached(self):
        storage = MemorySessionStorage()
        storage.write("x@y.com", FakeClock().now)
        lookup = AsyncMock(return_value=BuyerRecord("x@y.com", "X", AccessType.BASIC))

        with self._opener(lookup, storage):
            store = run(open_session_store("tok"))
            again = run(open_session_store("tok"))

        assert store.is_authenticated
        assert again is store
        assert lookup.await_count == 1

    def test_expired_cached_store_is_evicted(self):
        clock = FakeClock()
        store = SessionStore(
            storage=MemorySessionStorage(),
            lookup=AsyncMock(return_value=BuyerRecord("x@y.com", "X", AccessType.BASIC)),
            clock=clock,
        )
        run(store.login("x@y.com"))
        registry.put("tok", store)
        clock.advance(timedelta(days=7))

        run(open_session_store("tok"))

        assert registry.get("tok") is None

    def test_reload_that_misses_evicts(self):
        lookup = AsyncMock(return_value=BuyerRecord("x@y.com", "X", AccessType.BASIC))
        store = SessionStore(storage=MemorySessionStorage(), lookup=lookup, clock=FakeClock())
        run(store.login("x@y.com"))
        registry.put("tok", store)
        lookup.return_value = None

        run(open_session_store("tok", reload=True))

        assert registry.get("tok") is None

    def test_failed_login_does_not_cache(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock(return_value=None))

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            client.post("/member/login", json={"email": "ghost@y.com"}, headers={"X-Member-Session": "tok"})

        assert registry.get("tok") is None

    def test_successful_login_caches_store(self, unauthenticated_client, limiter):
        client, _ = unauthenticated_client
        store = _fresh_store(AsyncMock(return_value=BuyerRecord("x@y.com", "X", AccessType.PRO)))

        with patch("app.routers.member.open_session_store", AsyncMock(return_value=store)):
            client.post("/member/login", json={"email": "x@y.com"}, headers={"X-Member-Session": "tok"})

        assert registry.get("tok") is store
