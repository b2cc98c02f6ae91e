import json
from unittest import mock

import pytest

from submission_api.extensions import normalize_platform_url
from submission_api.platform import ConflictError, NotFoundError, Platform, PlatformError, filter_params


def _resp(status=200, body=None, content=None, headers=None, reason="OK"):
    r = mock.Mock()
    r.status_code = status
    r.ok = 200 <= status < 300
    r.reason = reason
    r.headers = headers or {}
    if body is not None:
        r.content = json.dumps(body).encode()
        r.json.return_value = body
    else:
        r.content = content or b""
        r.json.side_effect = ValueError("no json")
    return r


def _platform(*responses, service_key="service"):
    http = mock.Mock()
    http.request.side_effect = list(responses)
    return Platform("https://proj.example.co", "anon", service_key, timeout=3, http=http), http


def test_filter_params_encoding():
    assert filter_params({"id": 5, "bukti": None}) == [("id", "eq.5"), ("bukti", "is.null")]
    assert filter_params([("tanggal", ("gte", "2025-06-01")), ("tanggal", ("lte", "2025-06-07"))]) == [
        ("tanggal", "gte.2025-06-01"), ("tanggal", "lte.2025-06-07"),
    ]
    assert filter_params({"id": ("in", [1, 2]), "url": ("not.is", None)}) == [("id", "in.(1,2)"), ("url", "not.is.null")]
    assert filter_params(None) == []


def test_caller_channel_select_sends_caller_token():
    p, http = _platform(_resp(body=[{"id": 1}]))
    rows = p.for_caller("user-token").select("absensi", "*", {"user_id": "u1"}, order="tanggal.desc", limit=10)
    assert rows == [{"id": 1}]

    method, url = http.request.call_args.args
    kw = http.request.call_args.kwargs
    assert (method, url) == ("GET", "https://proj.example.co/rest/v1/absensi")
    assert kw["params"] == [("select", "*"), ("user_id", "eq.u1"), ("order", "tanggal.desc"), ("limit", "10")]
    assert kw["headers"]["apikey"] == "anon"
    assert kw["headers"]["Authorization"] == "Bearer user-token"
    assert kw["timeout"] == 3


def test_privileged_channel_uses_service_key():
    p, http = _platform(_resp(body=[{"id": "u1", "role": "admin"}]))
    p._privileged().update("profiles", {"role": "admin"}, {"id": "u1"})
    kw = http.request.call_args.kwargs
    assert http.request.call_args.args[0] == "PATCH"
    assert kw["headers"]["Authorization"] == "Bearer service"
    assert kw["headers"]["Prefer"] == "return=representation"


def test_privileged_channel_needs_a_service_key():
    p, _ = _platform(service_key="")
    with pytest.raises(PlatformError) as exc:
        p._privileged()
    assert exc.value.code == "config.service_key"


def test_update_without_filters_is_refused():
    p, http = _platform()
    with pytest.raises(ValueError):
        p._privileged().update("profiles", {"role": "admin"}, {})
    http.request.assert_not_called()


def test_error_mapping():
    p, _ = _platform(
        _resp(409, {"code": "23505", "message": "duplicate key value"}),
        _resp(400, {"statusCode": "404", "error": "not_found", "message": "Object not found"}),
        _resp(422, {"code": 422, "msg": "Email rate limit exceeded"}),
    )
    ch = p.for_caller("t")
    with pytest.raises(ConflictError):
        ch.insert("absensi", {"user_id": "u1"})
    with pytest.raises(NotFoundError) as nf:
        ch.download("foto-absensi", "u1/a.jpg")
    assert nf.value.message == "Object not found"
    with pytest.raises(PlatformError) as other:
        p._privileged().invite_user_by_email("a@b.c")
    assert other.value.status == 422
    assert other.value.message == "Email rate limit exceeded"


def test_download_and_count():
    p, http = _platform(
        _resp(content=b"jpegbytes", headers={"Content-Type": "image/jpeg; charset=binary"}),
        _resp(headers={"Content-Range": "0-9/42"}),
    )
    obj = p.for_caller("t").download("foto-absensi", "u1/check in.jpg")
    assert obj.content == b"jpegbytes"
    assert obj.content_type == "image/jpeg"
    assert http.request.call_args.args[1].endswith("/storage/v1/object/foto-absensi/u1/check%20in.jpg")

    assert p.for_caller("t").count("profiles") == 42
    assert http.request.call_args.kwargs["headers"]["Prefer"] == "count=exact"


def test_auth_client_token_grants():
    session = {"access_token": "a", "refresh_token": "r", "user": {"id": "u1"}}
    p, http = _platform(_resp(body=session), _resp(body={}), _resp(401, {"msg": "invalid JWT"}))
    assert p.auth.sign_in_with_password("a@b.c", "pw") == session
    kw = http.request.call_args.kwargs
    assert kw["params"] == {"grant_type": "password"}
    assert kw["json"] == {"email": "a@b.c", "password": "pw"}

    with pytest.raises(PlatformError) as exc:
        p.auth.refresh_session("r")
    assert exc.value.status == 502

    assert p.auth.get_user("revoked") is None


def test_normalize_platform_url():
    assert normalize_platform_url("https://proj.example.co/rest/v1/") == "https://proj.example.co"
    assert normalize_platform_url(" https://proj.example.co ") == "https://proj.example.co"
