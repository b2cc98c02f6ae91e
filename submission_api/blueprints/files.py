# submission_api/blueprints/files.py
"""
Proxies for private storage objects.

Non-admins get a file only when the record that references it belongs to them;
the owner is read from that record, never inferred from the folder layout. Admins
download through the service-role channel so bucket policies written for
owners do not get in the way.
"""
from __future__ import annotations

from typing import Callable, Optional

from flask import Blueprint, current_app

from submission_api.common.auth import Decision, check_access, current_caller, deny, grant_privileged
from submission_api.common.errors import platform_failure
from submission_api.models.attendance import ABSENSI, FOTO_ABSENSI_BUCKET
from submission_api.models.submission import (
    BUKTI_IZIN_BUCKET,
    BUKTI_REIMBURSEMENT_BUCKET,
    LEGACY_LAPORAN_BUCKETS,
    PENGAJUAN_IZIN,
    PENGAJUAN_REIMBURSEMENT,
    REIMBURSEMENT_BUKTI_FILES,
)
from submission_api.platform import DataChannel, NotFoundError, PlatformError
from submission_api.services.storage_files import (
    CACHE_HOUR,
    CACHE_IMMUTABLE,
    normalize_object_path,
    object_not_found,
    object_response,
)

bp = Blueprint("files", __name__, url_prefix="/api")

OwnerLookup = Callable[[DataChannel, str], Optional[str]]


# ---------- owner lookups ----------
def attendance_photo_owner(channel: DataChannel, path: str) -> Optional[str]:
    for col in ("check_in_photo_url", "check_out_photo_url"):
        row = channel.select_one(ABSENSI, "user_id", {col: path})
        if row:
            return row.get("user_id")
    return None


def leave_proof_owner(channel: DataChannel, path: str) -> Optional[str]:
    row = channel.select_one(PENGAJUAN_IZIN, "user_id", {"bukti_url": path})
    return row.get("user_id") if row else None


def reimbursement_proof_owner(channel: DataChannel, path: str) -> Optional[str]:
    f = channel.select_one(REIMBURSEMENT_BUKTI_FILES, "reimbursement_id", {"file_path": path})
    if not f:
        return None
    r = channel.select_one(PENGAJUAN_REIMBURSEMENT, "user_id", {"id": f.get("reimbursement_id")})
    return r.get("user_id") if r else None


# ---------- shared flow ----------
def _download_channel(caller, decision: Decision) -> DataChannel:
    if not caller.is_admin:
        return caller.channel
    try:
        return grant_privileged(decision)
    except PlatformError as e:
        current_app.logger.warning("service key unavailable, admin download uses caller policies: %s", e.message)
        return caller.channel


def _serve_owned(raw_path: str, route: str, bucket: str, owner_of: OwnerLookup,
                 cache_control: str, default_type: str = "application/octet-stream"):
    caller = current_caller()
    if caller is None:
        return deny(Decision.UNAUTHENTICATED)
    path = normalize_object_path(raw_path, route)

    try:
        if caller.is_admin:
            decision = check_access(caller)
        else:
            decision = check_access(caller, resource_owner_id=owner_of(caller.channel, path))
    except PlatformError as e:
        return platform_failure(e, f"authorize {route}")
    if decision is not Decision.ALLOW:
        current_app.logger.warning("file denied user=%s bucket=%s path=%s", caller.id, bucket, path)
        return deny(decision, caller)

    try:
        obj = _download_channel(caller, decision).download(bucket, path)
    except NotFoundError as e:
        current_app.logger.info("file not found bucket=%s path=%s: %s", bucket, path, e.message)
        return object_not_found(path, e.message)
    except PlatformError as e:
        return platform_failure(e, f"download {bucket}")
    return object_response(obj, cache_control, default_type)


# ---------- routes ----------
@bp.get("/foto-absensi/<path:file_path>")
def attendance_photo(file_path):
    return _serve_owned(file_path, "foto-absensi", FOTO_ABSENSI_BUCKET, attendance_photo_owner,
                        CACHE_IMMUTABLE, default_type="image/jpeg")


@bp.get("/bukti-izin/<path:file_path>")
def leave_proof(file_path):
    return _serve_owned(file_path, "bukti-izin", BUKTI_IZIN_BUCKET, leave_proof_owner, CACHE_HOUR)


@bp.get("/bukti-reimbursement/<path:file_path>")
def reimbursement_proof(file_path):
    return _serve_owned(file_path, "bukti-reimbursement", BUKTI_REIMBURSEMENT_BUCKET,
                        reimbursement_proof_owner, CACHE_IMMUTABLE)


@bp.get("/bukti/<path:file_path>")
def report_proof(file_path):
    """Admin-only; report proofs were uploaded to a few differently named buckets over time."""
    caller = current_caller()
    try:
        decision = check_access(caller)
    except PlatformError as e:
        return platform_failure(e, "authorize bukti")
    if decision is not Decision.ALLOW:
        return deny(decision, caller)
    path = normalize_object_path(file_path, "bukti")
    channel = _download_channel(caller, decision)

    last_error = None
    for bucket in LEGACY_LAPORAN_BUCKETS:
        try:
            obj = channel.download(bucket, path)
        except NotFoundError as e:
            last_error = e.message
            continue
        except PlatformError as e:
            return platform_failure(e, f"download {bucket}")
        return object_response(obj, CACHE_IMMUTABLE)

    current_app.logger.info("report proof %s not found in %s", path, ", ".join(LEGACY_LAPORAN_BUCKETS))
    return object_not_found(path, last_error, triedBuckets=list(LEGACY_LAPORAN_BUCKETS))
