# submission_api/models/__init__.py
"""
Table, bucket and enum names for records that live on the hosted platform.

Nothing here is persisted locally; these modules only describe the shape of
rows the blueprints read and write through a DataChannel.
"""
from submission_api.models.profile import Role, ADMIN_ROLES, EMPLOYMENT_STATUSES, PROFILES, PROFILES_WITH_EMAIL
from submission_api.models.submission import SubmissionStatus, SUBMISSION_TABLES
from submission_api.models.attendance import ABSENSI, FOTO_ABSENSI_BUCKET
from submission_api.models.settings import SYSTEM_SETTINGS, SUBMISSION_OPEN_KEY

__all__ = [
    "Role", "ADMIN_ROLES", "EMPLOYMENT_STATUSES", "PROFILES", "PROFILES_WITH_EMAIL",
    "SubmissionStatus", "SUBMISSION_TABLES",
    "ABSENSI", "FOTO_ABSENSI_BUCKET",
    "SYSTEM_SETTINGS", "SUBMISSION_OPEN_KEY",
]
