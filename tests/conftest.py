from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from submission_api import create_app

from fakes import FakePlatform

ADMIN_ID = "11111111-1111-1111-1111-111111111111"
EMPLOYEE_ID = "22222222-2222-2222-2222-222222222222"
OTHER_ID = "33333333-3333-3333-3333-333333333333"


class AppConfig:
    TESTING = True
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    JWT_ENCODE_AUDIENCE = "authenticated"
    ATTENDANCE_TIMEZONE = "UTC"


@pytest.fixture
def platform():
    p = FakePlatform()
    p.add_profile(ADMIN_ID, role="admin", full_name="Ani Admin", email="admin@corp.id")
    p.add_profile(EMPLOYEE_ID, role="employee", full_name="Budi Santoso", email="budi@corp.id")
    p.add_profile(OTHER_ID, role="employee", full_name="Citra Lestari", email="citra@corp.id")
    return p


@pytest.fixture
def app(platform):
    return create_app(AppConfig, platform=platform)


@pytest.fixture
def client(app):
    return app.test_client()


def mint(app, uid, expires_delta=None, **claims):
    with app.app_context():
        return create_access_token(
            identity=uid,
            additional_claims={"email": claims.pop("email", None), "role": "authenticated", **claims},
            expires_delta=expires_delta if expires_delta is not None else timedelta(hours=1),
        )


@pytest.fixture
def as_user(app):
    """as_user(uid) -> headers carrying a bearer token for that identity."""
    def _headers(uid, **claims):
        return {"Authorization": f"Bearer {mint(app, uid, **claims)}"}
    return _headers


@pytest.fixture
def admin_headers(as_user):
    return as_user(ADMIN_ID)


@pytest.fixture
def employee_headers(as_user):
    return as_user(EMPLOYEE_ID)
