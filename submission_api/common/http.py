# submission_api/common/http.py
from flask import jsonify, request

from submission_api.common.errors import APIError


def ok(data=None, status=200, message=None, **extra):
    payload = {"success": True}
    if data is not None:
        payload["data"] = data
    if message:
        payload["message"] = message
    payload.update(extra)
    return jsonify(payload), status


def fail(message="Bad Request", status=400, **extra):
    payload = {"success": False, "message": message}
    payload.update(extra)
    return jsonify(payload), status


def json_body() -> dict:
    """Request JSON as a dict; anything else (missing, malformed, a list) is a 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise APIError("Invalid JSON body", status=400, code="request.malformed")
    return data


def required_str(data: dict, field: str, message: str | None = None) -> str:
    v = data.get(field)
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(v)
    if not isinstance(v, str) or not v.strip():
        raise APIError(message or f"{field} is required", status=400, code="request.missing_field")
    return v.strip()


def positive_int(data: dict, field: str, default=None) -> int:
    """Whole amount > 0; "150000" and 150000.0 are accepted."""
    try:
        v = int(float(data.get(field, default)))
    except (TypeError, ValueError):
        v = 0
    if v <= 0:
        raise APIError(f"{field} must be greater than 0", status=400, code="request.invalid_field")
    return v
