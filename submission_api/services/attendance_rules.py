# submission_api/services/attendance_rules.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from submission_api.models.attendance import AttendanceStatus

# Wednesday is the company's weekly day off.
DAY_OFF_WEEKDAY = 2  # date.weekday(): Monday=0

DAY_NAMES = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")


def is_day_off(d: date) -> bool:
    return d.weekday() == DAY_OFF_WEEKDAY


def default_status(d: date) -> str:
    """What a day is expected to be before anyone checks in: libur on the day off, hadir otherwise."""
    return AttendanceStatus.LIBUR.value if is_day_off(d) else AttendanceStatus.HADIR.value


def check_in_status(d: date) -> str:
    """Checking in on the day off counts as overtime."""
    return AttendanceStatus.LEMBUR.value if is_day_off(d) else AttendanceStatus.HADIR.value


def effective_status(row: dict) -> str:
    """Rows written as 'hadir' on a day off predate the overtime rule; report them as 'lembur'."""
    status = (row.get("status") or "").lower()
    d = parse_date(row.get("tanggal"))
    if d and is_day_off(d) and status == AttendanceStatus.HADIR.value:
        return AttendanceStatus.LEMBUR.value
    return status


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def local_today(tz_name: str) -> date:
    """The attendance day is the office's calendar day, not UTC's."""
    return local_now(tz_name).date()


def day_name(d: date) -> str:
    return DAY_NAMES[d.weekday()]


def parse_date(val) -> Optional[date]:
    if not val:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(str(val)[:10], fmt).date()
        except ValueError:
            pass
    return None


def parse_ts(val) -> Optional[datetime]:
    if not val:
        return None
    if isinstance(val, datetime):
        return val
    s = str(val).strip().replace(" ", "T")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def work_duration(check_in, check_out) -> Optional[str]:
    """'8j 30m' between two timestamps, None when either side is missing."""
    start, end = parse_ts(check_in), parse_ts(check_out)
    if not start or not end:
        return None
    minutes = max(int((end - start).total_seconds() // 60), 0)
    return f"{minutes // 60}j {minutes % 60}m"


def today_stats(rows: list[dict], total_employees: int) -> dict:
    """Counts for one day's rows; anyone with no row at all is alpha."""
    by_status = {}
    for r in rows:
        s = effective_status(r)
        by_status[s] = by_status.get(s, 0) + 1
    attendees = {r.get("user_id") for r in rows if r.get("user_id")}
    return {
        "total_hadir": by_status.get("hadir", 0),
        "total_izin": by_status.get("izin", 0),
        "total_sakit": by_status.get("sakit", 0),
        "total_lembur": by_status.get("lembur", 0),
        "total_alpha": max(total_employees - len(attendees), 0),
    }
