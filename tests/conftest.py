import pytest

from liqa.auth.verify import admin_dependency, auth_dependency
from tests.fakes import NOW, FakeEmailService, FakeStorage


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def fake_email():
    return FakeEmailService()


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "1", "is_admin": False}

    return _override


@pytest.fixture
def admin_override():
    def _override():
        return {"sub": "99", "is_admin": True}

    return _override


@pytest.fixture
def apply_auth_override(auth_override, admin_override):
    def _apply(app, admin: bool = False):
        if admin:
            app.dependency_overrides[auth_dependency] = admin_override
            app.dependency_overrides[admin_dependency] = admin_override
        else:
            app.dependency_overrides[auth_dependency] = auth_override

    return _apply
