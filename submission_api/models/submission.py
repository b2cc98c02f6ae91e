# submission_api/models/submission.py
from __future__ import annotations

from enum import Enum

PENGAJUAN_UANG = "pengajuan_uang"
PENGAJUAN_BARANG = "pengajuan_barang"
PENGAJUAN_IZIN = "pengajuan_izin"
PENGAJUAN_REIMBURSEMENT = "pengajuan_reimbursement"

BUKTI_LAPORAN_FILES = "bukti_laporan_files"
REIMBURSEMENT_BUKTI_FILES = "reimbursement_bukti_files"

BUKTI_LAPORAN_BUCKET = "bukti-laporan"
BUKTI_REIMBURSEMENT_BUCKET = "bukti-reimbursement"
BUKTI_IZIN_BUCKET = "bukti-izin"

# Older uploads landed in differently named buckets; admin proof lookups try each.
LEGACY_LAPORAN_BUCKETS = ("bukti-laporan", "bukti_laporan", "buktilaporan")

REIMBURSEMENT_CATEGORY = "OPERASIONAL"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "disetujui"
    REJECTED = "ditolak"

    @property
    def is_final(self) -> bool:
        return self is not SubmissionStatus.PENDING

    @classmethod
    def parse(cls, value) -> "SubmissionStatus | None":
        s = (value or "").strip().lower()
        for st in cls:
            if st.value == s:
                return st
        return None


# kind in the URL -> table
SUBMISSION_TABLES = {
    "uang": PENGAJUAN_UANG,
    "barang": PENGAJUAN_BARANG,
    "izin": PENGAJUAN_IZIN,
    "reimbursement": PENGAJUAN_REIMBURSEMENT,
}

# leave request types an employee can file
LEAVE_TYPES = ("izin", "sakit")

# kinds where the admin records an approved amount / quantity
APPROVED_AMOUNT_KINDS = ("uang", "barang", "reimbursement")
