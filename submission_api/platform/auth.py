# submission_api/platform/auth.py
from __future__ import annotations

import logging
from typing import Optional

from submission_api.platform.errors import PlatformError, raise_for_response

log = logging.getLogger(__name__)


class AuthClient:
    """Public (anon key) endpoints of the auth provider."""

    def __init__(self, http, base_url: str, anon_key: str, timeout: float = 10.0):
        self._http = http
        self._base = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout

    def _post_token(self, grant_type: str, payload: dict) -> dict:
        resp = self._http.request(
            "POST",
            f"{self._base}/auth/v1/token",
            params={"grant_type": grant_type},
            json=payload,
            headers={"apikey": self._anon_key},
            timeout=self._timeout,
        )
        raise_for_response(resp)
        session = resp.json()
        if not session.get("access_token"):
            raise PlatformError("auth provider returned no access token", status=502)
        return session

    def get_user(self, access_token: str) -> Optional[dict]:
        """Ask the provider who owns this token. Revoked/unknown token -> None."""
        resp = self._http.request(
            "GET",
            f"{self._base}/auth/v1/user",
            headers={"apikey": self._anon_key, "Authorization": f"Bearer {access_token}"},
            timeout=self._timeout,
        )
        if resp.status_code in (401, 403):
            return None
        raise_for_response(resp)
        return resp.json()

    def sign_in_with_password(self, email: str, password: str) -> dict:
        return self._post_token("password", {"email": email, "password": password})

    def refresh_session(self, refresh_token: str) -> dict:
        """
        Returns {"access_token", "refresh_token", "expires_in", "user", ...}.
        Refresh tokens are single-use on the provider side.
        """
        return self._post_token("refresh_token", {"refresh_token": refresh_token})

    def sign_out(self, access_token: str) -> None:
        resp = self._http.request(
            "POST",
            f"{self._base}/auth/v1/logout",
            headers={"apikey": self._anon_key, "Authorization": f"Bearer {access_token}"},
            timeout=self._timeout,
        )
        # an already-expired session is fine to "log out" of
        if resp.status_code in (401, 403, 404):
            log.info("sign_out: session already gone (%s)", resp.status_code)
            return
        raise_for_response(resp)
