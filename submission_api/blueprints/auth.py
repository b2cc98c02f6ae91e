# submission_api/blueprints/auth.py
from flask import Blueprint, current_app, jsonify

from submission_api.common.auth import requires_session
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok, required_str
from submission_api.common.session import clear_session_cookies, resolve_identity, set_session_cookies
from submission_api.extensions import get_platform
from submission_api.platform import PlatformError

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.post("/check-email")
def check_email():
    """
    JSON: { "email": "someone@company.id" }  ->  { "exists": true|false }
    Used by the registration form before a session exists.
    """
    data = json_body()
    email = required_str(data, "email", "Email wajib diisi")
    try:
        exists = get_platform().email_directory().exists(email)
    except PlatformError as e:
        return platform_failure(e, "check email")
    return jsonify({"exists": exists})


@bp.get("/me")
@requires_session
def me(caller):
    try:
        profile = caller.profile
    except PlatformError as e:
        return platform_failure(e, "load profile")
    return ok({"id": caller.id, "email": caller.identity.email, "profile": profile})


@bp.post("/login")
def login():
    data = json_body()
    email = required_str(data, "email").lower()
    password = data.get("password") or ""
    if not password:
        return fail("password is required", 400)
    try:
        session = get_platform().auth.sign_in_with_password(email, password)
    except PlatformError as e:
        if e.status in (400, 401, 403):
            return fail("Invalid credentials", 401)
        return platform_failure(e, "login")

    user = session.get("user") or {}
    resp, status = ok({"user": {"id": user.get("id"), "email": user.get("email")}})
    set_session_cookies(resp, session)
    return resp, status


@bp.post("/logout")
def logout():
    identity = resolve_identity()
    if identity and identity.access_token:
        try:
            get_platform().auth.sign_out(identity.access_token)
        except PlatformError as e:
            current_app.logger.warning("provider sign-out failed: %s", e.message)
    resp, status = ok(message="Logged out")
    clear_session_cookies(resp)
    return resp, status
