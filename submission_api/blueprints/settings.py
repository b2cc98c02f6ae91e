# submission_api/blueprints/settings.py
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint

from submission_api.common.auth import requires_roles
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok
from submission_api.common.session import resolve_identity
from submission_api.extensions import get_platform
from submission_api.models.settings import SUBMISSION_OPEN_KEY, SYSTEM_SETTINGS
from submission_api.platform import DataChannel, PlatformError

bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def read_submission_open(channel: DataChannel) -> bool:
    """Intake is open unless a row explicitly says otherwise."""
    row = channel.select_one(SYSTEM_SETTINGS, "value", {"key": SUBMISSION_OPEN_KEY})
    if row is None:
        return True
    return str(row.get("value")).strip().lower() == "true"


def write_submission_open(channel: DataChannel, is_open: bool, updated_by: str | None) -> dict:
    return channel.upsert(
        SYSTEM_SETTINGS,
        {
            "key": SUBMISSION_OPEN_KEY,
            "value": "true" if is_open else "false",
            "updated_by": updated_by,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        },
        on_conflict="key",
    )


def _parse_flag(v):
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in ("true", "false"):
        return v.strip().lower() == "true"
    return None


@bp.get("/submission-status")
def get_submission_status():
    identity = resolve_identity()
    channel = get_platform().for_caller(identity.access_token if identity else None)
    try:
        is_open = read_submission_open(channel)
    except PlatformError as e:
        return platform_failure(e, "read submission status")
    return ok(isOpen=is_open)


@bp.post("/submission-status")
@requires_roles()
def set_submission_status(caller):
    """ JSON: { "isOpen": true|false } """
    data = json_body()
    is_open = _parse_flag(data.get("isOpen"))
    if is_open is None:
        return fail("isOpen must be a boolean", 400)
    try:
        write_submission_open(caller.channel, is_open, caller.id)
    except PlatformError as e:
        return platform_failure(e, "update submission status")
    return ok(isOpen=is_open)
