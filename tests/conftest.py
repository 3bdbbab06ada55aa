import pytest
from unittest.mock import Mock, MagicMock
from fastapi.testclient import TestClient

from main import app
from app.database import get_db
from app.auth.dependencies import get_current_user
from app.auth.member import get_session_store
from app.models.user import User, UserRole
from app.services.member_session import registry
from tests.helpers import make_member_store


@pytest.fixture(autouse=True)
def clear_session_registry():
    registry.clear()
    yield
    registry.clear()


@pytest.fixture
def mock_db():
    """Mock database session"""
    db = MagicMock()
    db.query.return_value = db
    db.filter.return_value = db
    db.join.return_value = db
    db.order_by.return_value = db
    db.group_by.return_value = db
    db.offset.return_value = db
    db.limit.return_value = db
    db.first.return_value = None
    db.all.return_value = []
    db.count.return_value = 0
    db.scalar.return_value = 0
    return db


@pytest.fixture
def mock_admin():
    user = Mock(spec=User)
    user.id = 1
    user.email = "admin@test.com"
    user.role = UserRole.ADMIN
    user.password_hash = "$2b$12$test_hash"
    return user


@pytest.fixture
def mock_user():
    """Back-office account without the admin role"""
    user = Mock(spec=User)
    user.id = 2
    user.email = "staff@test.com"
    user.role = UserRole.USER
    user.password_hash = "$2b$12$test_hash"
    return user


@pytest.fixture
def client_with_admin(mock_db, mock_admin):
    """TestClient with admin auth and mocked DB"""
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_user] = lambda: mock_admin
    client = TestClient(app)
    yield client, mock_db, mock_admin
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_user(mock_db, mock_user):
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_user] = lambda: mock_user
    client = TestClient(app)
    yield client, mock_db, mock_user
    app.dependency_overrides.clear()


@pytest.fixture
def unauthenticated_client(mock_db):
    """TestClient with mocked DB, no admin auth and no member session"""
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_session_store] = lambda: None
    client = TestClient(app)
    yield client, mock_db
    app.dependency_overrides.clear()


@pytest.fixture
def member_store():
    return make_member_store()


@pytest.fixture
def client_with_member(mock_db, member_store):
    """TestClient with a basic-tier member session and mocked DB"""
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_session_store] = lambda: member_store
    client = TestClient(app)
    yield client, mock_db, member_store
    app.dependency_overrides.clear()
