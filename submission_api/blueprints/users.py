# submission_api/blueprints/users.py
from __future__ import annotations

from flask import Blueprint, current_app

from submission_api.common.auth import requires_roles
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok, required_str
from submission_api.models.profile import PROFILES, Role
from submission_api.platform import PlatformError

bp = Blueprint("users", __name__, url_prefix="/api")


def _assignable_role(caller, raw) -> Role | None:
    """Admins may hand out admin/employee; only a superadmin can create another superadmin."""
    role = Role.parse(raw)
    if role is Role.SUPERADMIN and caller.role != Role.SUPERADMIN.value:
        return None
    return role


@bp.post("/invite")
@requires_roles(privileged=True)
def invite_user(caller, admin):
    """
    JSON: { "invite_email": "...", "invite_full_name": "...", "invite_role": "employee" }
    full_name and role ride along as user metadata; the provider's signup
    trigger copies them into the profile row.
    """
    data = json_body()
    email = required_str(data, "invite_email", "Email wajib diisi").lower()
    full_name = (data.get("invite_full_name") or "").strip()
    role = _assignable_role(caller, data.get("invite_role") or Role.EMPLOYEE.value)
    if role is None:
        return fail("invite_role is not valid", 400)

    try:
        admin.invite_user_by_email(email, {"full_name": full_name, "role": role.value})
    except PlatformError as e:
        return platform_failure(e, "invite user")
    current_app.logger.info("user invited email=%s role=%s by=%s", email, role.value, caller.id)
    return ok(message="Undangan terkirim.")


@bp.delete("/users/delete")
@requires_roles(privileged=True)
def delete_user(caller, admin):
    """ JSON: { "userId": "<uuid>" }; the profile row goes with it (cascade). """
    data = json_body()
    user_id = data.get("userId")
    if not user_id:
        return fail("User ID tidak ditemukan.", 400)
    if str(user_id) == caller.id:
        return fail("Tidak dapat menghapus akun sendiri.", 400)

    try:
        admin.delete_user(str(user_id))
    except PlatformError as e:
        return platform_failure(e, "delete user")
    current_app.logger.info("user deleted id=%s by=%s", user_id, caller.id)
    return ok(message="User berhasil dihapus.")


@bp.post("/users/update")
@requires_roles(privileged=True)
def update_user(caller, admin):
    """
    JSON: { "id": "<uuid>", "full_name": "...", "role": "admin" | "employee" | ... }

    Two writes, in order: the profile row, then the identity's user metadata.
    They are not atomic. If the second fails the profile change stays in place
    and the request answers 500; re-sending the same update converges.
    """
    data = json_body()
    user_id = data.get("id")
    if not user_id:
        return fail("User ID tidak ditemukan.", 400)

    values = {}
    full_name = data.get("full_name")
    if full_name is not None:
        values["full_name"] = str(full_name).strip()
    if data.get("role") is not None:
        role = _assignable_role(caller, data.get("role"))
        if role is None:
            return fail("role is not valid", 400)
        values["role"] = role.value
    if not values:
        return fail("full_name or role is required", 400)

    try:
        admin.update(PROFILES, values, {"id": user_id})
    except PlatformError as e:
        return platform_failure(e, "update user profile")

    # metadata mirrors what invite_user stored, so both keys are kept in sync
    try:
        admin.update_user_by_id(str(user_id), {"user_metadata": values})
    except PlatformError as e:
        current_app.logger.error(
            "profile %s updated but identity metadata was not; re-run the update (by=%s)", user_id, caller.id,
        )
        return platform_failure(e, "update user metadata")

    return ok(message="User berhasil diperbarui.")
