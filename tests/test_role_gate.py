from submission_api.common.auth import Decision, authorize, grant_privileged
from submission_api.common.session import Identity

import pytest

from conftest import ADMIN_ID, EMPLOYEE_ID, OTHER_ID


def test_authorize_decisions():
    me = Identity(id=EMPLOYEE_ID)
    assert authorize(None, ("admin",)) is Decision.UNAUTHENTICATED
    assert authorize(me, ("admin",), {"role": "admin"}) is Decision.ALLOW
    assert authorize(me, ("admin",), {"role": "employee"}) is Decision.FORBIDDEN
    # missing profile is just "no role"
    assert authorize(me, ("admin",), None) is Decision.FORBIDDEN
    assert authorize(me, ("admin",), None, resource_owner_id=EMPLOYEE_ID) is Decision.ALLOW
    assert authorize(me, ("admin",), {"role": "employee"}, resource_owner_id=OTHER_ID) is Decision.FORBIDDEN


def test_grant_privileged_requires_allow(app):
    with app.app_context():
        with pytest.raises(PermissionError):
            grant_privileged(Decision.FORBIDDEN)
        assert grant_privileged(Decision.ALLOW).privileged is True


@pytest.mark.parametrize("method,url,body", [
    ("get", "/api/employees", None),
    ("put", "/api/employees/update", {"id": EMPLOYEE_ID, "nik": "123"}),
    ("post", "/api/invite", {"invite_email": "new@corp.id"}),
    ("delete", "/api/users/delete", {"userId": OTHER_ID}),
    ("post", "/api/users/update", {"id": OTHER_ID, "role": "admin"}),
    ("post", "/api/settings/submission-status", {"isOpen": False}),
    ("get", "/api/debug/check-storage", None),
    ("post", "/api/submissions/uang/1/status", {"status": "disetujui"}),
    ("get", "/api/absensi", None),
    ("get", "/api/absensi/export", None),
])
def test_admin_routes_401_then_403(client, platform, employee_headers, method, url, body):
    before = {k: [dict(r) for r in v] for k, v in platform.tables.items() if v}

    r = getattr(client, method)(url, json=body)
    assert r.status_code == 401
    assert r.get_json()["success"] is False

    r = getattr(client, method)(url, json=body, headers=employee_headers)
    assert r.status_code == 403
    assert r.get_json()["message"] == "Forbidden"

    assert {k: [dict(r) for r in v] for k, v in platform.tables.items() if v} == before
    assert platform.invites == [] and platform.deleted_users == [] and platform.user_metadata == {}
    assert platform.privileged_built == 0


@pytest.mark.parametrize("method,url", [
    ("get", "/api/auth/me"),
    ("get", "/api/reimbursement"),
    ("post", "/api/reimbursement"),
    ("get", "/api/absensi/me"),
    ("post", "/api/absensi/check-in"),
    ("get", "/api/submissions/mine"),
    ("post", "/api/submissions/uang"),
    ("post", "/api/submissions/izin"),
    ("get", "/api/bukti-laporan/1"),
    ("get", "/api/foto-absensi/x/y.jpg"),
])
def test_session_routes_401_without_token(client, platform, method, url):
    r = getattr(client, method)(url)
    assert r.status_code == 401
    assert platform.downloads == []


def test_garbage_and_wrongly_signed_tokens_are_401(client, app):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    app.config["JWT_SECRET_KEY"], good = "another-secret-key-of-decent-length", app.config["JWT_SECRET_KEY"]
    from conftest import mint
    forged = mint(app, ADMIN_ID)
    app.config["JWT_SECRET_KEY"] = good
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


def test_admin_passes_gate(client, admin_headers):
    r = client.get("/api/employees", headers=admin_headers)
    assert r.status_code == 200
    names = [p["full_name"] for p in r.get_json()["data"]]
    assert names == sorted(names)


def test_custom_admin_roles_config(client, app, platform, employee_headers):
    app.config["ADMIN_ROLES"] = ("admin", "superadmin", "employee")
    r = client.get("/api/employees", headers=employee_headers)
    assert r.status_code == 200
