# submission_api/blueprints/employees.py
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint

from submission_api.common.auth import requires_roles
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok
from submission_api.models.profile import EMPLOYMENT_STATUSES, PROFILES, Role, normalize_employee_fields
from submission_api.platform import PlatformError
from submission_api.services.attendance_rules import parse_date

bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@bp.get("")
@requires_roles()
def list_employees(caller):
    """All profiles except superadmins, by name."""
    try:
        rows = caller.channel.select(
            PROFILES, "*", {"role": ("neq", Role.SUPERADMIN.value)}, order="full_name.asc",
        )
    except PlatformError as e:
        return platform_failure(e, "list employees")
    return ok(rows)


@bp.put("/update")
@requires_roles(privileged=True)
def update_employee(caller, admin):
    """
    JSON:
    {
      "id": "<profile uuid>",            # required
      "nik": "...", "division": "...", "position": "...",
      "phone_number": "...", "address": "...",
      "join_date": "YYYY-MM-DD" | "",   # "" clears the date
      "employment_status": "Tetap" | "Kontrak" | "Probation" | ""
    }
    Written with the privileged channel: profile policies only let a user edit their own row.
    """
    data = json_body()
    target_id = data.get("id")
    if not target_id:
        return fail("User ID is required", 400)

    values = normalize_employee_fields(data)
    if values.get("join_date") is not None:
        jd = parse_date(values["join_date"])
        if jd is None:
            return fail("join_date must be YYYY-MM-DD", 400)
        values["join_date"] = jd.isoformat()
    status = values.get("employment_status")
    if status is not None and status not in EMPLOYMENT_STATUSES:
        return fail(f"employment_status must be one of {', '.join(EMPLOYMENT_STATUSES)}", 400)
    values["updated_at"] = datetime.now(timezone.utc).isoformat()

    try:
        updated = admin.update(PROFILES, values, {"id": target_id})
    except PlatformError as e:
        return platform_failure(e, "update employee")
    if not updated:
        return fail("Employee not found", 404)
    return ok(updated[0], message="Data karyawan berhasil diperbarui")
