# submission_api/common/auth.py
from __future__ import annotations

from enum import Enum
from functools import wraps
from typing import Iterable, Optional

from flask import current_app

from submission_api.common.errors import platform_failure
from submission_api.common.http import fail
from submission_api.common.session import Identity, resolve_identity
from submission_api.extensions import get_platform
from submission_api.models.profile import ADMIN_ROLES, PROFILES
from submission_api.platform import AdminChannel, DataChannel, PlatformError


class Decision(Enum):
    ALLOW = (200, "OK")
    UNAUTHENTICATED = (401, "Unauthorized")
    FORBIDDEN = (403, "Forbidden")

    @property
    def status(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


def authorize(identity: Optional[Identity], required_roles: Iterable[str],
              profile: Optional[dict] = None, resource_owner_id=None) -> Decision:
    """
    401 when there is no identity, ALLOW when the profile's role is one of
    `required_roles` or the caller owns the resource, 403 otherwise.
    """
    if identity is None:
        return Decision.UNAUTHENTICATED
    role = (profile or {}).get("role")
    if role and role in set(required_roles):
        return Decision.ALLOW
    if resource_owner_id is not None and str(resource_owner_id) == identity.id:
        return Decision.ALLOW
    return Decision.FORBIDDEN


class Caller:
    """Resolved identity + its caller-scoped channel; the profile is loaded on first use."""

    def __init__(self, identity: Identity, channel: DataChannel):
        self.identity = identity
        self.channel = channel
        self._profile = None
        self._profile_loaded = False

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def profile(self) -> Optional[dict]:
        if not self._profile_loaded:
            self._profile = self.channel.select_one(PROFILES, "*", {"id": self.identity.id})
            self._profile_loaded = True
        return self._profile

    @property
    def role(self) -> Optional[str]:
        return (self.profile or {}).get("role")

    @property
    def is_admin(self) -> bool:
        return self.role in admin_roles()


def admin_roles() -> frozenset:
    return frozenset(current_app.config.get("ADMIN_ROLES") or ADMIN_ROLES)


def current_caller() -> Optional[Caller]:
    identity = resolve_identity()
    if identity is None:
        return None
    return Caller(identity, get_platform().for_caller(identity.access_token))


def check_access(caller: Optional[Caller], required_roles: Iterable[str] = (), resource_owner_id=None) -> Decision:
    """Role gate for handlers that decide after a lookup (owner checks)."""
    if caller is None:
        return Decision.UNAUTHENTICATED
    return authorize(caller.identity, required_roles or admin_roles(), caller.profile, resource_owner_id)


def grant_privileged(decision: Decision) -> AdminChannel:
    """The only way a handler body obtains the service-role channel."""
    if decision is not Decision.ALLOW:
        raise PermissionError("privileged channel requested without an ALLOW decision")
    return get_platform()._privileged()


def deny(decision: Decision, caller: Optional[Caller] = None, needed=()):
    if decision is Decision.FORBIDDEN:
        current_app.logger.warning(
            "role gate deny user=%s role=%s needs=%s",
            caller.id if caller else None, caller.role if caller else None, ",".join(sorted(needed)),
        )
    return fail(decision.message, status=decision.status)


# ---------- decorators ----------

def requires_session(fn):
    """401 unless a session resolves; passes the Caller as first argument."""
    @wraps(fn)
    def inner(*args, **kwargs):
        caller = current_caller()
        if caller is None:
            return deny(Decision.UNAUTHENTICATED)
        return fn(caller, *args, **kwargs)
    return inner


def requires_roles(*roles: str, privileged: bool = False):
    """
    Require the caller's profile role to be one of `roles` (default: admin roles).
    With privileged=True the service-role channel is built after the gate
    passes and handed to the view as the `admin` keyword argument.
    """
    def outer(fn):
        @wraps(fn)
        def inner(*args, **kwargs):
            needed = frozenset(roles) or admin_roles()
            caller = current_caller()
            try:
                decision = check_access(caller, needed)
            except PlatformError as e:
                return platform_failure(e, "role lookup")
            if decision is not Decision.ALLOW:
                return deny(decision, caller, needed)
            if privileged:
                try:
                    kwargs["admin"] = grant_privileged(decision)
                except PlatformError as e:
                    return platform_failure(e, "privileged channel")
            return fn(caller, *args, **kwargs)
        return inner
    return outer
