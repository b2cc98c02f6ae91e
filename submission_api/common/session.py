# submission_api/common/session.py
"""
Session resolution.

The access token is the auth provider's JWT, read from the session cookie or an
``Authorization: Bearer`` header and verified with the project's JWT secret via
flask_jwt_extended. "No identity" is an ordinary outcome and is returned as
``None``; nothing in here raises for a missing, bad or expired token.

When the access token has expired and a refresh cookie is present, the refresh
token is exchanged at the provider and the new pair is written back onto the
response, so the caller never sees the expiry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from flask import after_this_request, current_app, g, request
from flask_jwt_extended import decode_token, get_jwt, set_access_cookies, unset_jwt_cookies, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import ExpiredSignatureError, InvalidTokenError

from submission_api.extensions import get_platform
from submission_api.platform import PlatformError

_UNRESOLVED = object()


@dataclass
class Identity:
    id: str
    email: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)
    access_token: Optional[str] = field(default=None, repr=False)


def _identity_from_claims(claims: dict, token: str) -> Optional[Identity]:
    uid = claims.get(current_app.config.get("JWT_IDENTITY_CLAIM", "sub"))
    if not uid:
        return None
    return Identity(
        id=str(uid),
        email=claims.get("email"),
        user_metadata=claims.get("user_metadata") or {},
        access_token=token,
    )


def _raw_token() -> Optional[str]:
    """Same lookup order flask_jwt_extended uses (JWT_TOKEN_LOCATION = headers, cookies)."""
    for loc in current_app.config["JWT_TOKEN_LOCATION"]:
        if loc == "headers":
            auth = request.headers.get(current_app.config["JWT_HEADER_NAME"], "")
            prefix = current_app.config["JWT_HEADER_TYPE"]
            parts = auth.split()
            if len(parts) == 2 and parts[0] == prefix:
                return parts[1]
        elif loc == "cookies":
            tok = request.cookies.get(current_app.config["JWT_ACCESS_COOKIE_NAME"])
            if tok:
                return tok
    return None


def set_session_cookies(response, session: dict):
    set_access_cookies(response, session["access_token"], max_age=session.get("expires_in"))
    refresh = session.get("refresh_token")
    if refresh:
        response.set_cookie(
            current_app.config["SESSION_REFRESH_COOKIE"],
            refresh,
            max_age=current_app.config["SESSION_REFRESH_MAX_AGE"],
            httponly=True,
            secure=current_app.config["JWT_COOKIE_SECURE"],
            samesite=current_app.config["JWT_COOKIE_SAMESITE"] or "Lax",
        )
    return response


def clear_session_cookies(response):
    unset_jwt_cookies(response)
    response.delete_cookie(current_app.config["SESSION_REFRESH_COOKIE"])
    return response


def _refresh_from_cookie() -> Optional[Identity]:
    refresh_token = request.cookies.get(current_app.config["SESSION_REFRESH_COOKIE"])
    if not refresh_token:
        return None
    try:
        session = get_platform().auth.refresh_session(refresh_token)
        claims = decode_token(session["access_token"])
    except (PlatformError, InvalidTokenError, JWTExtendedException) as e:
        current_app.logger.info("session refresh failed: %s", e)
        return None

    @after_this_request
    def _store_refreshed(response):
        return set_session_cookies(response, session)

    return _identity_from_claims(claims, session["access_token"])


def _resolve() -> Optional[Identity]:
    try:
        verify_jwt_in_request(optional=True, verify_type=False)
    except ExpiredSignatureError:
        return _refresh_from_cookie()
    except (InvalidTokenError, JWTExtendedException) as e:
        current_app.logger.info("session token rejected: %s", e)
        return None

    claims = get_jwt()
    if not claims:
        return None
    token = _raw_token()
    identity = _identity_from_claims(claims, token)

    if identity and current_app.config.get("SESSION_VERIFY_REMOTE"):
        # signature alone cannot tell a signed-out session apart
        try:
            user = get_platform().auth.get_user(token)
        except PlatformError as e:
            current_app.logger.warning("remote session check failed: %s", e.message)
            return None
        if not user or str(user.get("id")) != identity.id:
            return None
    return identity


def resolve_identity() -> Optional[Identity]:
    """Caller identity for this request, memoised on flask.g."""
    cached = g.get("_identity", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached
    identity = _resolve()
    g._identity = identity
    return identity
