# submission_api/services/storage_files.py
from __future__ import annotations

import mimetypes
import re
import secrets
import time
from typing import Optional

from flask import Response, current_app, jsonify
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from submission_api.common.errors import APIError
from submission_api.platform import StoredObject

IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
REPORT_PROOF_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
REIMBURSEMENT_PROOF_TYPES = ("image/jpeg", "image/jpg", "image/png", "application/pdf")
LEAVE_PROOF_TYPES = ("image/jpeg", "image/jpg", "image/png", "application/pdf")

CACHE_IMMUTABLE = "public, max-age=31536000, immutable"
CACHE_HOUR = "public, max-age=3600"

_EXT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "pdf": "application/pdf",
}


def guess_content_type(path: str, default: str = "application/octet-stream") -> str:
    ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return _EXT_TYPES.get(ext) or mimetypes.guess_type(path)[0] or default


def normalize_object_path(raw: str, route_prefix: str) -> str:
    """
    Clean a catch-all path segment from the URL.
    Clients sometimes send the full proxy URL back ("api/foto-absensi/<uid>/x.jpg").
    """
    path = re.sub(rf"^/*api/{re.escape(route_prefix)}/", "", raw or "")
    path = path.lstrip("/")
    if not path:
        raise APIError("Bad Request: Missing path", status=400)
    if any(seg in ("..", ".") for seg in path.split("/")):
        raise APIError("Invalid path", status=400)
    return path


def object_response(obj: StoredObject, cache_control: str, default_type: str = "application/octet-stream") -> Response:
    resp = Response(obj.content, status=200, mimetype=obj.content_type or guess_content_type(obj.path, default_type))
    resp.headers["Cache-Control"] = cache_control
    return resp


def object_not_found(path: str, details: Optional[str] = None, **extra):
    body = {"error": "File not found", "path": path, "details": details}
    body.update(extra)
    return jsonify(body), 404


# ---------- uploads ----------

def file_extension(filename: str, fallback: str = "bin") -> str:
    name = secure_filename(filename or "")
    return name.rsplit(".", 1)[-1].lower() if "." in name else fallback


def unique_name(prefix: str, filename: str) -> str:
    """<prefix><ms-timestamp>_<random>.<ext>"""
    return f"{prefix}{int(time.time() * 1000)}_{secrets.token_hex(3)}.{file_extension(filename)}"


def check_batch(files: list[FileStorage]) -> None:
    if not files:
        raise APIError("At least one file is required", status=400)
    limit = current_app.config["MAX_UPLOAD_FILES"]
    if len(files) > limit:
        raise APIError(f"Maximum {limit} files allowed", status=400)


def read_upload(file: FileStorage, allowed_types) -> tuple[Optional[bytes], Optional[str]]:
    """(content, None) when acceptable, (None, reason) otherwise."""
    ctype = (file.mimetype or "").lower()
    if ctype not in allowed_types:
        labels = ", ".join(sorted({t.split("/")[1].upper() for t in allowed_types}))
        return None, f"Invalid file type. Allowed: {labels}"
    content = file.read()
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if len(content) > max_bytes:
        return None, f"File too large. Maximum {max_bytes // (1024 * 1024)}MB"
    if not content:
        return None, "File is empty"
    return content, None
