# submission_api/platform/errors.py
from __future__ import annotations

from typing import Any, Optional


class PlatformError(Exception):
    """A call to the hosted platform (auth, rest or storage) failed."""

    def __init__(self, message: str, status: int = 500, code: Optional[str] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.payload = payload


class NotFoundError(PlatformError):
    def __init__(self, message: str = "Not found", code: Optional[str] = None, payload: Any = None):
        super().__init__(message, status=404, code=code, payload=payload)


class ConflictError(PlatformError):
    """Unique / FK violation reported by the database (postgres 23505 and friends)."""

    def __init__(self, message: str = "Conflict", code: Optional[str] = None, payload: Any = None):
        super().__init__(message, status=409, code=code, payload=payload)


def raise_for_response(resp) -> None:
    """
    Turn a non-2xx platform response into a PlatformError.

    The three surfaces report errors differently:
      rest    -> {"code": "23505", "message": "...", "details": ..., "hint": ...}
      auth    -> {"code": 422, "msg": "..."} or {"error": "...", "error_description": "..."}
      storage -> {"statusCode": "404", "error": "not_found", "message": "Object not found"}
    """
    if resp.ok:
        return
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or resp.reason
        or f"HTTP {resp.status_code}"
    )
    code = body.get("code") or body.get("error_code")
    code = str(code) if code is not None else None

    if resp.status_code == 404 or str(body.get("statusCode")) == "404":
        raise NotFoundError(message, code=code, payload=body)
    if resp.status_code == 409 or code in ("23505", "23503"):
        raise ConflictError(message, code=code, payload=body)
    raise PlatformError(message, status=resp.status_code, code=code, payload=body)
