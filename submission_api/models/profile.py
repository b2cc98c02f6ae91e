# submission_api/models/profile.py
from __future__ import annotations

from enum import Enum

PROFILES = "profiles"
PROFILES_WITH_EMAIL = "user_profiles_with_email"


class Role(str, Enum):
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value) -> "Role | None":
        s = (value or "").strip().lower()
        for r in cls:
            if r.value == s:
                return r
        return None


ADMIN_ROLES = frozenset({Role.ADMIN.value, Role.SUPERADMIN.value})

EMPLOYMENT_STATUSES = ("Tetap", "Kontrak", "Probation")

# Columns an admin may edit through PUT /api/employees/update
EMPLOYEE_FIELDS = (
    "nik",
    "division",
    "position",
    "phone_number",
    "address",
    "join_date",
    "employment_status",
)


def normalize_employee_fields(body: dict) -> dict:
    """
    Pick editable employee columns from a request body.
    Empty strings become None so date/enum columns never receive "".
    Keys absent from the body are left out of the update.
    """
    out = {}
    for f in EMPLOYEE_FIELDS:
        if f not in body:
            continue
        v = body.get(f)
        if isinstance(v, str):
            v = v.strip() or None
        out[f] = v
    return out
