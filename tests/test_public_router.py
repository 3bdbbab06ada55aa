"""Tests for the public catalog (app/routers/public.py)"""
from app.auth.member import get_session_store
from app.models.buyer import AccessType
from app.models.course import Course, CourseAccessLevel, Material, MaterialType, Module
from main import app
from tests.helpers import make_member_store


def _catalog():
    return [
        Course(id=1, title="Free", is_published=True, access_level=CourseAccessLevel.PUBLIC, order_index=0),
        Course(id=2, title="Basic", is_published=True, access_level=CourseAccessLevel.BASIC, order_index=1),
        Course(id=3, title="Pro", is_published=True, access_level=CourseAccessLevel.PRO, order_index=2),
    ]


def _locked(response):
    return {c["id"]: c["locked"] for c in response.json()}


class TestCourseList:
    def test_anonymous_sees_only_public_unlocked(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        mock_db.all.return_value = _catalog()

        response = client.get("/courses")

        assert response.status_code == 200
        assert _locked(response) == {1: False, 2: True, 3: True}

    def test_basic_member(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.all.return_value = _catalog()

        assert _locked(client.get("/courses")) == {1: False, 2: False, 3: True}

    def test_ebook_member_only_sees_public(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        store = make_member_store(tier=AccessType.EBOOK)
        app.dependency_overrides[get_session_store] = lambda: store
        mock_db.all.return_value = _catalog()

        assert _locked(client.get("/courses")) == {1: False, 2: True, 3: True}

    def test_pro_member_sees_everything(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        store = make_member_store(tier=AccessType.PRO)
        app.dependency_overrides[get_session_store] = lambda: store
        mock_db.all.return_value = _catalog()

        assert _locked(client.get("/courses")) == {1: False, 2: False, 3: False}


class TestCourseDetail:
    def _course_with_modules(self, access_level):
        course = Course(id=2, title="C", is_published=True, access_level=access_level, order_index=0)
        course.modules = [
            Module(id=6, course_id=2, title="Second", order_index=1),
            Module(id=5, course_id=2, title="First", order_index=0),
        ]
        return course

    def test_accessible_course_lists_modules_in_order(self, client_with_member):
        client, mock_db, _ = client_with_member
        mock_db.first.return_value = self._course_with_modules(CourseAccessLevel.BASIC)

        response = client.get("/courses/2")

        assert response.status_code == 200
        data = response.json()
        assert data["locked"] is False
        assert [m["id"] for m in data["modules"]] == [5, 6]

    def test_locked_course_returns_metadata_only(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        mock_db.first.return_value = self._course_with_modules(CourseAccessLevel.BASIC)

        response = client.get("/courses/2")

        assert response.status_code == 200
        data = response.json()
        assert data["locked"] is True
        assert data["title"] == "C"
        assert data["modules"] == []

    def test_unpublished_or_missing_course_404(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        mock_db.first.return_value = None
        assert client.get("/courses/99").status_code == 404


class TestModuleDetail:
    def _module(self, access_level):
        course = Course(id=1, title="C", is_published=True, access_level=access_level, order_index=0)
        module = Module(id=4, course_id=1, title="M", order_index=0)
        module.course = course
        module.materials = [
            Material(id=2, module_id=4, title="Video", type=MaterialType.VIDEO,
                     media_url="https://vimeo.com/123", order_index=1),
            Material(id=1, module_id=4, title="Intro", type=MaterialType.TEXT, content="Hello", order_index=0),
        ]
        return module

    def test_locked_module_has_no_materials(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        mock_db.first.return_value = self._module(CourseAccessLevel.PRO)

        data = client.get("/modules/4").json()

        assert data["locked"] is True
        assert data["materials"] == []

    def test_public_module_materials_in_order_with_embed(self, unauthenticated_client):
        client, mock_db = unauthenticated_client
        mock_db.first.return_value = self._module(CourseAccessLevel.PUBLIC)

        data = client.get("/modules/4").json()

        assert data["locked"] is False
        assert [m["id"] for m in data["materials"]] == [1, 2]
        assert data["materials"][1]["embed_url"] == "https://player.vimeo.com/video/123"
