# submission_api/blueprints/submissions.py
from __future__ import annotations

import time

from flask import Blueprint, current_app, request

from submission_api.blueprints.settings import read_submission_open
from submission_api.common.auth import requires_roles, requires_session
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, json_body, ok, positive_int, required_str
from submission_api.models.profile import PROFILES
from submission_api.models.submission import (
    APPROVED_AMOUNT_KINDS,
    BUKTI_IZIN_BUCKET,
    LEAVE_TYPES,
    PENGAJUAN_BARANG,
    PENGAJUAN_IZIN,
    PENGAJUAN_UANG,
    SUBMISSION_TABLES,
    SubmissionStatus,
)
from submission_api.platform import PlatformError
from submission_api.services.attendance_rules import parse_date
from submission_api.services.storage_files import LEAVE_PROOF_TYPES, file_extension, read_upload

bp = Blueprint("submissions", __name__, url_prefix="/api/submissions")


def _with_names(channel, rows: list[dict]) -> list[dict]:
    ids = sorted({r["user_id"] for r in rows if r.get("user_id")})
    if not ids:
        return rows
    profiles = channel.select(PROFILES, "id, full_name", {"id": ("in", ids)})
    names = {p["id"]: p.get("full_name") for p in profiles}
    for r in rows:
        r["full_name"] = names.get(r.get("user_id"))
    return rows


@bp.get("/mine")
@requires_session
def my_submissions(caller):
    """Every submission of the caller, grouped by kind, newest first."""
    out = {}
    try:
        for kind, table in SUBMISSION_TABLES.items():
            out[kind] = caller.channel.select(table, "*", {"user_id": caller.id}, order="created_at.desc")
    except PlatformError as e:
        return platform_failure(e, "list own submissions")
    return ok(out)


# ---------- employee intake ----------
def _form_or_json() -> dict:
    if request.mimetype == "multipart/form-data":
        return request.form.to_dict()
    return json_body()


def _intake_closed(caller):
    if not read_submission_open(caller.channel):
        return fail("Pengajuan sedang ditutup", 403)
    return None


@bp.post("/uang")
@requires_session
def create_money_request(caller):
    """
    JSON: { "jumlah_uang": 500000, "keperluan": "...", "nama_bank": "...",
            "nomor_rekening": "...", "atas_nama": "..." }
    """
    data = json_body()
    row = {
        "user_id": caller.id,
        "jumlah_uang": positive_int(data, "jumlah_uang"),
        "keperluan": required_str(data, "keperluan"),
        "nama_bank": required_str(data, "nama_bank"),
        "nomor_rekening": required_str(data, "nomor_rekening"),
        "atas_nama": required_str(data, "atas_nama"),
        "status": SubmissionStatus.PENDING.value,
    }
    try:
        closed = _intake_closed(caller)
        if closed:
            return closed
        created = caller.channel.insert(PENGAJUAN_UANG, row)
    except PlatformError as e:
        return platform_failure(e, "create money request")
    current_app.logger.info("pengajuan_uang %s by=%s", created.get("id"), caller.id)
    return ok(created, 201)


@bp.post("/barang")
@requires_session
def create_goods_request(caller):
    """ JSON: { "nama_barang": "...", "jumlah": 2, "alasan": "..." } """
    data = json_body()
    row = {
        "user_id": caller.id,
        "nama_barang": required_str(data, "nama_barang", "Nama barang wajib diisi"),
        "jumlah": positive_int(data, "jumlah", default=1),
        "alasan": required_str(data, "alasan", "Alasan pengajuan wajib diisi"),
        "status": SubmissionStatus.PENDING.value,
    }
    try:
        closed = _intake_closed(caller)
        if closed:
            return closed
        created = caller.channel.insert(PENGAJUAN_BARANG, row)
    except PlatformError as e:
        return platform_failure(e, "create goods request")
    current_app.logger.info("pengajuan_barang %s by=%s", created.get("id"), caller.id)
    return ok(created, 201)


@bp.post("/izin")
@requires_session
def create_leave_request(caller):
    """
    multipart/form-data (or JSON without a proof):
      jenis (izin|sakit), tanggal_mulai, tanggal_selesai (YYYY-MM-DD), alasan,
      bukti (optional; JPG/PNG/PDF up to 5MB)
    """
    data = _form_or_json()
    jenis = (data.get("jenis") or "").strip().lower()
    if jenis not in LEAVE_TYPES:
        return fail("Pilih jenis izin", 400)
    start, end = parse_date(data.get("tanggal_mulai")), parse_date(data.get("tanggal_selesai"))
    if start is None or end is None:
        return fail("Pilih tanggal mulai dan selesai", 400)
    if end < start:
        return fail("Tanggal selesai harus setelah atau sama dengan tanggal mulai", 400)
    alasan = required_str(data, "alasan")

    proof, content = request.files.get("bukti"), None
    if proof is not None and proof.filename:
        content, problem = read_upload(proof, LEAVE_PROOF_TYPES)
        if problem:
            return fail(problem, 400)

    path = None
    try:
        closed = _intake_closed(caller)
        if closed:
            return closed
        if content is not None:
            path = f"{caller.id}/{int(time.time() * 1000)}.{file_extension(proof.filename)}"
            caller.channel.upload(BUKTI_IZIN_BUCKET, path, content, proof.mimetype)
    except PlatformError as e:
        return platform_failure(e, "upload leave proof")

    try:
        created = caller.channel.insert(PENGAJUAN_IZIN, {
            "user_id": caller.id,
            "jenis": jenis,
            "tanggal_mulai": start.isoformat(),
            "tanggal_selesai": end.isoformat(),
            "jumlah_hari": (end - start).days + 1,
            "alasan": alasan,
            "bukti_url": path,
            "status": SubmissionStatus.PENDING.value,
        })
    except PlatformError as e:
        if path:
            try:
                caller.channel.remove(BUKTI_IZIN_BUCKET, [path])
            except PlatformError:
                current_app.logger.exception("could not remove orphaned leave proof %s", path)
        return platform_failure(e, "create leave request")
    current_app.logger.info("pengajuan_izin %s by=%s days=%s", created.get("id"), caller.id, created.get("jumlah_hari"))
    return ok(created, 201)


@bp.get("/<kind>")
@requires_roles()
def list_submissions(caller, kind: str):
    """ ?status=pending|disetujui|ditolak """
    table = SUBMISSION_TABLES.get(kind)
    if table is None:
        return fail(f"Unknown submission kind: {kind}", 404)
    filters = {}
    raw_status = request.args.get("status")
    if raw_status:
        status = SubmissionStatus.parse(raw_status)
        if status is None:
            return fail("status is not valid", 400)
        filters["status"] = status.value

    try:
        rows = caller.channel.select(table, "*", filters, order="created_at.desc")
        rows = _with_names(caller.channel, rows)
    except PlatformError as e:
        return platform_failure(e, f"list {table}")
    return ok(rows)


def _approved_amount(v):
    if v in (None, ""):
        return None, None
    try:
        amount = float(v)
    except (TypeError, ValueError):
        return None, "jumlah_disetujui must be a number"
    if amount < 0:
        return None, "jumlah_disetujui must not be negative"
    return (int(amount) if amount.is_integer() else amount), None


@bp.post("/<kind>/<int:submission_id>/status")
@requires_roles(privileged=True)
def transition_submission(caller, kind: str, submission_id: int, admin):
    """
    JSON: { "status": "disetujui" | "ditolak", "catatan_admin": "...", "jumlah_disetujui": 100000 }
    Only pending submissions move; approved and rejected ones are final.
    """
    table = SUBMISSION_TABLES.get(kind)
    if table is None:
        return fail(f"Unknown submission kind: {kind}", 404)

    data = json_body()
    target = SubmissionStatus.parse(data.get("status"))
    if target is None or not target.is_final:
        return fail("status must be 'disetujui' or 'ditolak'", 400)

    values = {"status": target.value}
    note = data.get("catatan_admin", data.get("catatan"))
    if note is not None:
        values["catatan_admin"] = str(note).strip() or None
    if kind in APPROVED_AMOUNT_KINDS and target is SubmissionStatus.APPROVED:
        amount, problem = _approved_amount(data.get("jumlah_disetujui"))
        if problem:
            return fail(problem, 400)
        if amount is not None:
            values["jumlah_disetujui"] = amount

    try:
        current = admin.select_one(table, "id, status", {"id": submission_id})
        if current is None:
            return fail("Pengajuan tidak ditemukan", 404)
        if SubmissionStatus.parse(current.get("status")) is not SubmissionStatus.PENDING:
            return fail(f"Pengajuan sudah {current.get('status')}", 409)
        # the status filter keeps two reviewers from both finalising the same row
        updated = admin.update(table, values, {"id": submission_id, "status": SubmissionStatus.PENDING.value})
    except PlatformError as e:
        return platform_failure(e, f"update {table}")
    if not updated:
        return fail("Pengajuan sudah diproses", 409)

    current_app.logger.info("%s %s -> %s by=%s", table, submission_id, target.value, caller.id)
    return ok(updated[0])
