from datetime import timedelta

from submission_api.platform import PlatformError

from conftest import EMPLOYEE_ID, mint


def _set_cookies(resp):
    return "\n".join(resp.headers.getlist("Set-Cookie"))


# ---------- check-email ----------
def test_check_email_hit_and_miss(client, platform):
    r = client.post("/api/auth/check-email", json={"email": "budi@corp.id"})
    assert r.status_code == 200
    assert r.get_json() == {"exists": True}

    r = client.post("/api/auth/check-email", json={"email": "nobody@corp.id"})
    assert r.status_code == 200
    assert r.get_json() == {"exists": False}


def test_check_email_requires_email(client):
    r = client.post("/api/auth/check-email", json={"email": "  "})
    assert r.status_code == 400
    r = client.post("/api/auth/check-email", data="nope", content_type="text/plain")
    assert r.status_code == 400


def test_check_email_platform_failure_is_500(client, platform):
    platform.fail("select", PlatformError("relation does not exist", status=400))
    r = client.post("/api/auth/check-email", json={"email": "budi@corp.id"})
    assert r.status_code == 500
    assert r.get_json()["message"] == "relation does not exist"


# ---------- me / login / logout ----------
def test_me_returns_identity_and_profile(client, as_user):
    r = client.get("/api/auth/me", headers=as_user(EMPLOYEE_ID, email="budi@corp.id"))
    body = r.get_json()
    assert r.status_code == 200
    assert body["data"]["id"] == EMPLOYEE_ID
    assert body["data"]["email"] == "budi@corp.id"
    assert body["data"]["profile"]["full_name"] == "Budi Santoso"


def test_login_sets_session_cookies(client, app, platform):
    token = mint(app, EMPLOYEE_ID)
    platform.auth.passwords["budi@corp.id"] = ("rahasia", {
        "access_token": token, "refresh_token": "r-1", "expires_in": 3600,
        "user": {"id": EMPLOYEE_ID, "email": "budi@corp.id"},
    })

    r = client.post("/api/auth/login", json={"email": "Budi@corp.id", "password": "rahasia"})
    assert r.status_code == 200
    assert r.get_json()["data"]["user"]["id"] == EMPLOYEE_ID
    cookies = _set_cookies(r)
    assert "sb-access-token=" in cookies
    assert "sb-refresh-token=r-1" in cookies

    # the cookie alone now carries the session
    r = client.get("/api/auth/me")
    assert r.status_code == 200


def test_login_bad_credentials_is_401(client):
    r = client.post("/api/auth/login", json={"email": "budi@corp.id", "password": "wrong"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "budi@corp.id"})
    assert r.status_code == 400


def test_logout_clears_cookies(client, platform, employee_headers):
    r = client.post("/api/auth/logout", headers=employee_headers)
    assert r.status_code == 200
    assert len(platform.auth.signed_out) == 1
    cookies = _set_cookies(r)
    assert "sb-access-token=;" in cookies
    assert "sb-refresh-token=;" in cookies


# ---------- transparent refresh ----------
def test_expired_token_is_refreshed_from_cookie(client, app, platform):
    expired = mint(app, EMPLOYEE_ID, expires_delta=timedelta(minutes=-10))
    fresh = mint(app, EMPLOYEE_ID)
    platform.auth.refresh["r-1"] = {"access_token": fresh, "refresh_token": "r-2", "expires_in": 3600}
    client.set_cookie("sb-refresh-token", "r-1")

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 200
    assert r.get_json()["data"]["id"] == EMPLOYEE_ID
    cookies = _set_cookies(r)
    assert f"sb-access-token={fresh}" in cookies
    assert "sb-refresh-token=r-2" in cookies


def test_expired_token_without_refresh_is_401(client, app):
    expired = mint(app, EMPLOYEE_ID, expires_delta=timedelta(minutes=-10))
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401


def test_failed_refresh_is_401(client, app):
    expired = mint(app, EMPLOYEE_ID, expires_delta=timedelta(minutes=-10))
    client.set_cookie("sb-refresh-token", "already-used")
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401


def test_remote_verification_rejects_signed_out_session(client, app, employee_headers):
    app.config["SESSION_VERIFY_REMOTE"] = True
    # FakeAuth.get_user knows no sessions
    r = client.get("/api/auth/me", headers=employee_headers)
    assert r.status_code == 401
