# submission_api/platform/client.py
from __future__ import annotations

from typing import Optional

import requests

from submission_api.models.profile import PROFILES_WITH_EMAIL
from submission_api.platform.auth import AuthClient
from submission_api.platform.channel import AdminChannel, DataChannel
from submission_api.platform.errors import PlatformError


class EmailDirectory:
    """
    Read-only lookup over the profiles-with-email view.

    Pre-registration checks run without a session, so they cannot pass the role
    gate; this wraps the service-role channel and exposes nothing but `exists`.
    """

    def __init__(self, channel: DataChannel):
        self._channel = channel

    def exists(self, email: str) -> bool:
        row = self._channel.select_one(PROFILES_WITH_EMAIL, "email", {"email": email})
        return row is not None


class Platform:
    """
    Entry point to the hosted backend: base URL plus two credential levels.

      for_caller(token)  -> DataChannel under the caller's policies
      auth               -> AuthClient (anon key)
      _privileged()      -> AdminChannel (service key); gate-only, see common.auth
    """

    def __init__(self, url: str, anon_key: str, service_key: str = "", timeout: float = 10.0,
                 http: Optional[requests.Session] = None):
        self.url = url.rstrip("/")
        self._anon_key = anon_key
        self._service_key = service_key
        self._timeout = timeout
        self._http = http or requests.Session()
        self.auth = AuthClient(self._http, self.url, anon_key, timeout=timeout)

    def for_caller(self, access_token: Optional[str]) -> DataChannel:
        return DataChannel(self._http, self.url, self._anon_key, bearer=access_token, timeout=self._timeout)

    def _privileged(self) -> AdminChannel:
        if not self._service_key:
            raise PlatformError("service role key is not configured", status=500, code="config.service_key")
        return AdminChannel(self._http, self.url, self._service_key, timeout=self._timeout)

    def email_directory(self) -> EmailDirectory:
        return EmailDirectory(self._privileged())
