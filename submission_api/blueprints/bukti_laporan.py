# submission_api/blueprints/bukti_laporan.py
from __future__ import annotations

from flask import Blueprint, current_app, request

from submission_api.common.auth import Decision, check_access, deny, requires_session
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, ok
from submission_api.models.submission import (
    BUKTI_LAPORAN_BUCKET,
    BUKTI_LAPORAN_FILES,
    PENGAJUAN_UANG,
    SubmissionStatus,
)
from submission_api.platform import PlatformError
from submission_api.services.proofs import store_proof_files
from submission_api.services.storage_files import REPORT_PROOF_TYPES, check_batch, unique_name

bp = Blueprint("bukti_laporan", __name__, url_prefix="/api/bukti-laporan")


@bp.post("/upload")
@requires_session
def upload_report_proofs(caller):
    """
    multipart/form-data: pengajuan_id, files (1..5 images)
    Usage reports can only be attached to an approved money request of your own.
    """
    pid = (request.form.get("pengajuan_id") or "").strip()
    files = request.files.getlist("files")
    if not pid.isdigit():
        return fail("pengajuan_id is required", 400)
    check_batch(files)

    try:
        req = caller.channel.select_one(
            PENGAJUAN_UANG, "id, user_id, status", {"id": int(pid), "user_id": caller.id},
        )
    except PlatformError as e:
        return platform_failure(e, "load pengajuan")
    if not req:
        return fail("Pengajuan not found or access denied", 404)
    if (req.get("status") or "").lower() != SubmissionStatus.APPROVED.value:
        return fail("Can only upload proof for approved requests", 400)

    uploaded, errors = store_proof_files(
        caller.channel,
        bucket=BUKTI_LAPORAN_BUCKET,
        table=BUKTI_LAPORAN_FILES,
        files=files,
        allowed_types=REPORT_PROOF_TYPES,
        path_for=lambda i, f: f"{caller.id}/{unique_name(f'laporan-{pid}-{i}-', f.filename)}",
        row_for=lambda path, f, size: {
            "pengajuan_uang_id": int(pid),
            "file_path": path,
            "file_name": f.filename,
            "file_size": size,
        },
    )
    current_app.logger.info("pengajuan %s report proofs: %d stored, %d failed", pid, len(uploaded), len(errors))

    extra = {"errors": errors} if errors else {}
    return ok(
        uploaded=[
            {"id": r.get("id"), "fileName": r.get("file_name"), "filePath": r.get("file_path"),
             "fileSize": r.get("file_size")}
            for r in uploaded
        ],
        message=f"{len(uploaded)} file(s) uploaded successfully",
        **extra,
    )


@bp.get("/<int:pengajuan_id>")
@requires_session
def list_report_proofs(caller, pengajuan_id: int):
    try:
        if caller.is_admin:
            decision = check_access(caller)
        else:
            req = caller.channel.select_one(PENGAJUAN_UANG, "user_id", {"id": pengajuan_id})
            decision = check_access(caller, resource_owner_id=(req or {}).get("user_id"))
        if decision is not Decision.ALLOW:
            return deny(decision, caller)
        files = caller.channel.select(
            BUKTI_LAPORAN_FILES, "*", {"pengajuan_uang_id": pengajuan_id}, order="created_at.asc",
        )
    except PlatformError as e:
        return platform_failure(e, "list report proofs")
    return ok(files=files, count=len(files))


@bp.delete("/<int:pengajuan_id>")
@requires_session
def delete_report_proof(caller, pengajuan_id: int):
    """?fileId=<id>. Only the owner of the money request may remove its proofs."""
    file_id = (request.args.get("fileId") or "").strip()
    if not file_id.isdigit():
        return fail("fileId is required", 400)

    try:
        f = caller.channel.select_one(
            BUKTI_LAPORAN_FILES, "*", {"id": int(file_id), "pengajuan_uang_id": pengajuan_id},
        )
        if not f:
            return fail("File not found", 404)
        req = caller.channel.select_one(PENGAJUAN_UANG, "user_id", {"id": pengajuan_id})
        # owners only: admins review proofs, they do not curate them
        if not req or str(req.get("user_id")) != caller.id:
            return deny(Decision.FORBIDDEN, caller)
    except PlatformError as e:
        return platform_failure(e, "load report proof")

    try:
        caller.channel.remove(BUKTI_LAPORAN_BUCKET, [f["file_path"]])
    except PlatformError as e:
        # the row is what the UI lists; drop it even if the object is already gone
        current_app.logger.warning("storage delete of %s failed: %s", f.get("file_path"), e.message)

    try:
        caller.channel.delete(BUKTI_LAPORAN_FILES, {"id": int(file_id)})
    except PlatformError as e:
        return platform_failure(e, "delete report proof")
    return ok(message="File deleted successfully")
