# submission_api/blueprints/reimbursement.py
from __future__ import annotations

from flask import Blueprint, current_app, request

from submission_api.blueprints.settings import read_submission_open
from submission_api.common.auth import Decision, check_access, deny, requires_session
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok, positive_int
from submission_api.models.submission import (
    BUKTI_REIMBURSEMENT_BUCKET,
    PENGAJUAN_REIMBURSEMENT,
    REIMBURSEMENT_BUKTI_FILES,
    REIMBURSEMENT_CATEGORY,
    SubmissionStatus,
)
from submission_api.platform import PlatformError
from submission_api.services.proofs import store_proof_files
from submission_api.services.storage_files import REIMBURSEMENT_PROOF_TYPES, check_batch, unique_name

bp = Blueprint("reimbursement", __name__, url_prefix="/api/reimbursement")

REQUIRED_FIELDS = ("jumlah_uang", "keperluan", "nama_bank", "nomor_rekening", "atas_nama")


@bp.post("")
@requires_session
def create_reimbursement(caller):
    """
    JSON: { "jumlah_uang": 150000, "keperluan": "...", "nama_bank": "...",
            "nomor_rekening": "...", "atas_nama": "..." }
    """
    data = json_body()
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        return fail(f"Missing required fields: {', '.join(missing)}", 400)
    amount = positive_int(data, "jumlah_uang")

    try:
        if not read_submission_open(caller.channel):
            return fail("Pengajuan sedang ditutup", 403)
        row = caller.channel.insert(PENGAJUAN_REIMBURSEMENT, {
            "user_id": caller.id,
            "jumlah_uang": amount,
            "keperluan": str(data["keperluan"]).strip(),
            "kategori": REIMBURSEMENT_CATEGORY,
            "nama_bank": str(data["nama_bank"]).strip(),
            "nomor_rekening": str(data["nomor_rekening"]).strip(),
            "atas_nama": str(data["atas_nama"]).strip(),
            "status": SubmissionStatus.PENDING.value,
        })
    except PlatformError as e:
        return platform_failure(e, "create reimbursement")
    return ok(row, 201)


@bp.get("")
@requires_session
def my_reimbursements(caller):
    try:
        rows = caller.channel.select(
            PENGAJUAN_REIMBURSEMENT, "*", {"user_id": caller.id}, order="created_at.desc",
        )
    except PlatformError as e:
        return platform_failure(e, "list reimbursements")
    return ok(rows)


@bp.get("/<int:reimbursement_id>/bukti")
@requires_session
def reimbursement_proofs(caller, reimbursement_id: int):
    """Proof-file metadata for one reimbursement (owner or admin)."""
    try:
        r = caller.channel.select_one(PENGAJUAN_REIMBURSEMENT, "id, user_id", {"id": reimbursement_id})
        if r is None:
            return fail("Reimbursement not found", 404)
        decision = check_access(caller, resource_owner_id=(r or {}).get("user_id"))
        if decision is not Decision.ALLOW:
            return deny(decision, caller)
        rows = caller.channel.select(
            REIMBURSEMENT_BUKTI_FILES, "*", {"reimbursement_id": reimbursement_id}, order="uploaded_at.asc",
        )
    except PlatformError as e:
        return platform_failure(e, "list reimbursement proofs")
    return ok(rows)


@bp.post("/upload-bukti")
@requires_session
def upload_proofs(caller):
    """multipart/form-data: reimbursement_id, files (1..5; JPG/PNG/PDF up to 5MB each)"""
    rid = (request.form.get("reimbursement_id") or "").strip()
    files = request.files.getlist("files")
    if not rid.isdigit():
        return fail("Reimbursement ID is required", 400)
    check_batch(files)

    try:
        owned = caller.channel.select_one(
            PENGAJUAN_REIMBURSEMENT, "id, user_id", {"id": int(rid), "user_id": caller.id},
        )
    except PlatformError as e:
        return platform_failure(e, "load reimbursement")
    if not owned:
        return fail("Reimbursement not found or access denied", 404)

    uploaded, errors = store_proof_files(
        caller.channel,
        bucket=BUKTI_REIMBURSEMENT_BUCKET,
        table=REIMBURSEMENT_BUKTI_FILES,
        files=files,
        allowed_types=REIMBURSEMENT_PROOF_TYPES,
        path_for=lambda i, f: f"reimbursement-bukti/{rid}/{unique_name('', f.filename)}",
        row_for=lambda path, f, size: {
            "reimbursement_id": int(rid),
            "file_path": path,
            "file_name": f.filename,
            "file_size": size,
        },
    )
    current_app.logger.info("reimbursement %s proofs: %d stored, %d failed", rid, len(uploaded), len(errors))

    if not uploaded:
        return fail("All files failed to upload", 500, details=errors)
    extra = {"errors": errors} if errors else {}
    return ok(uploaded, 201, message=f"{len(uploaded)} file(s) uploaded successfully", **extra)
