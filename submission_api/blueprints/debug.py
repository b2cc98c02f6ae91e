# submission_api/blueprints/debug.py
from flask import Blueprint, jsonify

from submission_api.common.auth import requires_roles
from submission_api.models.submission import LEGACY_LAPORAN_BUCKETS, PENGAJUAN_UANG
from submission_api.platform import PlatformError

bp = Blueprint("debug", __name__, url_prefix="/api/debug")


@bp.get("/check-storage")
@requires_roles()
def check_storage(caller):
    """
    Diagnostic snapshot: visible buckets, a few objects per report-proof bucket,
    and money requests that reference a report proof. Each probe reports its own
    error instead of failing the whole call.
    """
    channel = caller.channel
    results = {"buckets": [], "sampleFiles": {}, "pengajuanWithBukti": []}

    try:
        results["buckets"] = [b.get("name") for b in channel.list_buckets()]
    except PlatformError as e:
        results["bucketsError"] = e.message

    for bucket in LEGACY_LAPORAN_BUCKETS:
        try:
            files = channel.list_objects(bucket, "", limit=10)
            results["sampleFiles"][bucket] = [
                {"name": f.get("name"), "id": f.get("id"), "created_at": f.get("created_at")} for f in files
            ]
        except PlatformError as e:
            results["sampleFiles"][bucket] = {"error": e.message}

    try:
        results["pengajuanWithBukti"] = channel.select(
            PENGAJUAN_UANG, "id, bukti_laporan_url, status, created_at",
            {"bukti_laporan_url": ("not.is", None)}, limit=5,
        )
    except PlatformError as e:
        results["pengajuanError"] = e.message

    return jsonify(results), 200
