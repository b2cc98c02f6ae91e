# submission_api/models/attendance.py
from __future__ import annotations

from enum import Enum

ABSENSI = "absensi"
FOTO_ABSENSI_BUCKET = "foto-absensi"


class AttendanceStatus(str, Enum):
    HADIR = "hadir"
    LIBUR = "libur"
    LEMBUR = "lembur"
    IZIN = "izin"
    SAKIT = "sakit"
    ALPHA = "alpha"
    CUTI = "cuti"


STATUS_LABELS = {
    "hadir": "Hadir",
    "izin": "Izin",
    "sakit": "Sakit",
    "alpha": "Alpha",
    "cuti": "Cuti",
    "libur": "Libur",
    "lembur": "Lembur",
}
