# submission_api/blueprints/attendance.py
from __future__ import annotations

import time
from datetime import timedelta

from flask import Blueprint, current_app, request, send_file

from submission_api.common.auth import admin_roles, requires_roles, requires_session
from submission_api.common.errors import platform_failure
from submission_api.common.http import fail, ok
from submission_api.models.attendance import ABSENSI, FOTO_ABSENSI_BUCKET
from submission_api.models.profile import PROFILES
from submission_api.platform import ConflictError, PlatformError
from submission_api.services.attendance_export import XLSX_MIMETYPE, build_csv, build_workbook, export_filename, export_title
from submission_api.services.attendance_rules import (
    check_in_status,
    day_name,
    default_status,
    effective_status,
    local_now,
    local_today,
    parse_date,
    today_stats,
    work_duration,
)
from submission_api.services.storage_files import IMAGE_TYPES, file_extension, read_upload

bp = Blueprint("attendance", __name__, url_prefix="/api/absensi")

# /me without a range shows the last week
DEFAULT_HISTORY_DAYS = 7


# ---------- helpers ----------
def _tz() -> str:
    return current_app.config["ATTENDANCE_TIMEZONE"]


def _date_range(default_from, default_to):
    """(from, to, error) from ?from=&to=; error is a message for a 400."""
    raw_from, raw_to = request.args.get("from"), request.args.get("to")
    d_from = parse_date(raw_from) if raw_from else default_from
    d_to = parse_date(raw_to) if raw_to else default_to
    if d_from is None or d_to is None:
        return None, None, "from/to must be YYYY-MM-DD"
    if d_from > d_to:
        return None, None, "from must not be after to"
    return d_from, d_to, None


def _range_filters(d_from, d_to, **eq) -> list[tuple]:
    out = [("tanggal", ("gte", d_from.isoformat())), ("tanggal", ("lte", d_to.isoformat()))]
    out.extend(eq.items())
    return out


def _decorate(row: dict) -> dict:
    d = parse_date(row.get("tanggal"))
    row["status"] = effective_status(row)
    row["hari"] = day_name(d) if d else None
    row["durasi"] = work_duration(row.get("check_in_time"), row.get("check_out_time"))
    return row


def _photo_from_request():
    photo = request.files.get("photo")
    if photo is None or not photo.filename:
        return None, None, "photo is required"
    content, problem = read_upload(photo, IMAGE_TYPES)
    if problem:
        return None, None, problem
    return photo, content, None


def _store_photo(channel, user_id: str, kind: str, photo, content: bytes) -> str:
    path = f"{user_id}/{kind}-{int(time.time() * 1000)}.{file_extension(photo.filename, 'jpg')}"
    channel.upload(FOTO_ABSENSI_BUCKET, path, content, photo.mimetype or "image/jpeg")
    return path


def _discard_photo(channel, path: str):
    try:
        channel.remove(FOTO_ABSENSI_BUCKET, [path])
    except PlatformError:
        current_app.logger.exception("could not remove orphaned photo %s", path)


def _monitor_rows(channel, d_from, d_to, q: str):
    """Attendance rows in range with names attached, plus the employee list used for stats."""
    rows = channel.select(ABSENSI, "*", _range_filters(d_from, d_to), order="tanggal.desc,check_in_time.desc")
    employees = channel.select(
        PROFILES, "id, full_name, role", {"role": ("not.in", sorted(admin_roles()))}, order="full_name.asc",
    )
    names = {p["id"]: p.get("full_name") for p in employees}
    missing = sorted({r["user_id"] for r in rows if r.get("user_id") and r["user_id"] not in names})
    if missing:
        for p in channel.select(PROFILES, "id, full_name", {"id": ("in", missing)}):
            names[p["id"]] = p.get("full_name")

    out = []
    needle = (q or "").strip().lower()
    for r in rows:
        r["full_name"] = names.get(r.get("user_id")) or "Unknown"
        if needle and needle not in r["full_name"].lower():
            continue
        out.append(_decorate(r))
    return out, employees


# ---------- employee ----------
@bp.post("/check-in")
@requires_session
def check_in(caller):
    """multipart/form-data: photo (selfie, JPEG/PNG/WebP)"""
    photo, content, problem = _photo_from_request()
    if problem:
        return fail(problem, 400)

    now = local_now(_tz())
    today = now.date()
    try:
        if caller.channel.select_one(ABSENSI, "id", {"user_id": caller.id, "tanggal": today.isoformat()}):
            return fail("Anda sudah melakukan check-in hari ini", 409)
        path = _store_photo(caller.channel, caller.id, "check-in", photo, content)
    except PlatformError as e:
        return platform_failure(e, "check-in photo upload")

    try:
        row = caller.channel.insert(ABSENSI, {
            "user_id": caller.id,
            "tanggal": today.isoformat(),
            "check_in_time": now.isoformat(),
            "check_in_photo_url": path,
            "status": check_in_status(today),
        })
    except ConflictError:
        # lost a race with a parallel check-in; the unique (user_id, tanggal) row already exists
        _discard_photo(caller.channel, path)
        return fail("Anda sudah melakukan check-in hari ini", 409)
    except PlatformError as e:
        _discard_photo(caller.channel, path)
        return platform_failure(e, "check-in")

    current_app.logger.info("check-in user=%s date=%s status=%s", caller.id, today, row.get("status"))
    return ok(_decorate(row), 201)


@bp.post("/check-out")
@requires_session
def check_out(caller):
    """multipart/form-data: keterangan (what was done today), photo"""
    keterangan = (request.form.get("keterangan") or "").strip()
    if not keterangan:
        return fail("keterangan is required", 400)
    photo, content, problem = _photo_from_request()
    if problem:
        return fail(problem, 400)

    now = local_now(_tz())
    today = now.date()
    try:
        row = caller.channel.select_one(ABSENSI, "*", {"user_id": caller.id, "tanggal": today.isoformat()})
        if row is None:
            return fail("Belum check-in hari ini", 404)
        if row.get("check_out_time"):
            return fail("Anda sudah melakukan check-out hari ini", 409)
        path = _store_photo(caller.channel, caller.id, "check-out", photo, content)
    except PlatformError as e:
        return platform_failure(e, "check-out photo upload")

    try:
        updated = caller.channel.update(
            ABSENSI,
            {
                "check_out_time": now.isoformat(),
                "check_out_photo_url": path,
                "check_in_keterangan": keterangan,
                "updated_at": now.isoformat(),
            },
            {"id": row["id"], "check_out_time": None},
        )
    except PlatformError as e:
        _discard_photo(caller.channel, path)
        return platform_failure(e, "check-out")
    if not updated:
        _discard_photo(caller.channel, path)
        return fail("Anda sudah melakukan check-out hari ini", 409)

    return ok(_decorate(updated[0]))


@bp.get("/me")
@requires_session
def my_attendance(caller):
    """ ?from=YYYY-MM-DD&to=YYYY-MM-DD (default: the last 7 days) """
    today = local_today(_tz())
    d_from, d_to, problem = _date_range(today - timedelta(days=DEFAULT_HISTORY_DAYS - 1), today)
    if problem:
        return fail(problem, 400)

    try:
        rows = caller.channel.select(
            ABSENSI, "*", _range_filters(d_from, d_to, user_id=caller.id), order="tanggal.desc",
        )
        if d_from <= today <= d_to:
            today_row = next((r for r in rows if parse_date(r.get("tanggal")) == today), None)
        else:
            today_row = caller.channel.select_one(ABSENSI, "*", {"user_id": caller.id, "tanggal": today.isoformat()})
    except PlatformError as e:
        return platform_failure(e, "list own attendance")

    return ok(
        [_decorate(r) for r in rows],
        meta={
            "today": today.isoformat(),
            "todayRecord": _decorate(dict(today_row)) if today_row else None,
            "expectedStatus": default_status(today),
            "from": d_from.isoformat(),
            "to": d_to.isoformat(),
        },
    )


# ---------- admin ----------
@bp.get("")
@requires_roles()
def monitor(caller):
    """ ?from=&to=&q=  (default: today). Stats always describe today. """
    today = local_today(_tz())
    d_from, d_to, problem = _date_range(today, today)
    if problem:
        return fail(problem, 400)

    try:
        rows, employees = _monitor_rows(caller.channel, d_from, d_to, request.args.get("q", ""))
        today_rows = caller.channel.select(ABSENSI, "status, user_id, tanggal, check_in_time", {"tanggal": today.isoformat()})
    except PlatformError as e:
        return platform_failure(e, "attendance monitor")

    return ok(
        rows,
        meta={
            "from": d_from.isoformat(),
            "to": d_to.isoformat(),
            "stats": today_stats(today_rows, len(employees)),
            "employees": [{"id": p["id"], "full_name": p.get("full_name")} for p in employees],
        },
    )


@bp.get("/export")
@requires_roles()
def export(caller):
    """ ?from=&to=&q=&format=xlsx|csv """
    fmt = (request.args.get("format") or "xlsx").lower()
    if fmt not in ("xlsx", "csv"):
        return fail("format must be xlsx or csv", 400)
    today = local_today(_tz())
    d_from, d_to, problem = _date_range(today, today)
    if problem:
        return fail(problem, 400)

    try:
        rows, _ = _monitor_rows(caller.channel, d_from, d_to, request.args.get("q", ""))
    except PlatformError as e:
        return platform_failure(e, "attendance export")

    period = d_from.strftime("%d/%m/%Y")
    if d_to != d_from:
        period = f"{period} - {d_to.strftime('%d/%m/%Y')}"
    filename = export_filename(export_title(rows), period.replace("/", "-"), fmt, _tz())
    current_app.logger.info("attendance export %s rows=%d by=%s", fmt, len(rows), caller.id)

    if fmt == "csv":
        return send_file(build_csv(rows, _tz()), mimetype="text/csv", as_attachment=True, download_name=filename)
    return send_file(build_workbook(rows, period, _tz()), mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=filename)
