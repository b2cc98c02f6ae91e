# submission_api/services/attendance_export.py
from __future__ import annotations

import csv
import io
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from submission_api.models.attendance import STATUS_LABELS
from submission_api.services.attendance_rules import day_name, local_now, parse_date, parse_ts, work_duration

HEADERS = ["Nama", "Hari Tanggal", "Masuk", "Pulang", "Durasi", "Keterangan", "Status"]

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _hhmm(ts, tz: ZoneInfo) -> str:
    """Clock time in the office timezone; the platform stores UTC."""
    t = parse_ts(ts)
    if not t:
        return "-"
    if t.tzinfo is not None:
        t = t.astimezone(tz)
    return t.strftime("%H:%M")


def _day(val) -> str:
    d = parse_date(val)
    return f"{day_name(d)}, {d.strftime('%d/%m/%Y')}" if d else "-"


def export_rows(records: list[dict], tz_name: str) -> list[list[str]]:
    tz = ZoneInfo(tz_name)
    return [
        [
            r.get("full_name") or "Unknown",
            _day(r.get("tanggal")),
            _hhmm(r.get("check_in_time"), tz),
            _hhmm(r.get("check_out_time"), tz),
            work_duration(r.get("check_in_time"), r.get("check_out_time")) or "-",
            r.get("check_in_keterangan") or "-",
            STATUS_LABELS.get(r.get("status") or "", r.get("status") or "-"),
        ]
        for r in records
    ]


def export_title(records: list[dict]) -> str:
    names = {r.get("full_name") for r in records if r.get("full_name")}
    if len(names) == 1:
        return f"Rekap Absensi {names.pop()}"
    if not names:
        return "Rekap Absensi"
    return "Rekap Absensi Karyawan"


def export_filename(title: str, period: str, ext: str, tz_name: str) -> str:
    stamp = local_now(tz_name).strftime("%Y-%m-%dT%H-%M-%S")
    safe = "".join(ch for ch in title if ch.isalnum() or ch == " ").replace(" ", "_")
    return f"{safe}_{period.replace(' ', '_')}_{stamp}.{ext}"


def build_workbook(records: list[dict], period: str, tz_name: str) -> io.BytesIO:
    title = export_title(records)
    wb = Workbook()
    ws = wb.active
    ws.title = "Absensi"
    ws.append([title])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([f"Periode: {period}"])
    ws.append([f"Dicetak: {local_now(tz_name).strftime('%d/%m/%Y %H:%M')}"])
    ws.append([])
    ws.append(HEADERS)
    header_fill = PatternFill("solid", fgColor="4472C4")
    for cell in ws[5]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
    for row in export_rows(records, tz_name):
        ws.append(row)
    for col, width in zip("ABCDEFG", (28, 26, 10, 10, 10, 36, 12)):
        ws.column_dimensions[col].width = width

    bio = io.BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio


def build_csv(records: list[dict], tz_name: str) -> io.BytesIO:
    text = io.StringIO()
    w = csv.writer(text)
    w.writerow(HEADERS)
    w.writerows(export_rows(records, tz_name))
    return io.BytesIO(text.getvalue().encode("utf-8-sig"))
