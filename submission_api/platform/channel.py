# submission_api/platform/channel.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union
from urllib.parse import quote

from submission_api.platform.errors import raise_for_response

log = logging.getLogger(__name__)

Filters = Union[Mapping[str, Any], Iterable[tuple], None]


@dataclass
class StoredObject:
    bucket: str
    path: str
    content: bytes
    content_type: Optional[str] = None


# ---------- filter encoding ----------
def _literal(v) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (list, tuple, set)):
        return "(" + ",".join(_literal(x) for x in v) + ")"
    return str(v)


def filter_params(filters: Filters) -> list[tuple[str, str]]:
    """
    Encode filters as rest query params.

      {"id": 5}                        -> id=eq.5
      {"bukti": None}                  -> bukti=is.null
      {"role": ("neq", "superadmin")}  -> role=neq.superadmin
      [("tanggal", ("gte", d1)), ("tanggal", ("lte", d2))]  (same column twice)
      {"url": ("not.is", None)}        -> url=not.is.null
      {"id": ("in", [1, 2])}           -> id=in.(1,2)
    """
    if not filters:
        return []
    items = filters.items() if isinstance(filters, Mapping) else filters
    out = []
    for col, cond in items:
        if isinstance(cond, tuple) and len(cond) == 2 and isinstance(cond[0], str):
            op, val = cond
        elif cond is None:
            op, val = "is", None
        else:
            op, val = "eq", cond
        out.append((col, f"{op}.{_literal(val)}"))
    return out


class DataChannel:
    """
    Table + storage access authenticated with one credential.

    A caller-scoped channel sends the anon key plus the caller's access token,
    so row-level policies apply. A privileged channel sends the service key
    for both headers and bypasses them.
    """

    def __init__(self, http, base_url: str, api_key: str, bearer: Optional[str] = None, timeout: float = 10.0):
        self._http = http
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {bearer or api_key}",
        }

    # ---------- transport ----------
    def _request(self, method: str, path: str, *, params=None, json=None, data=None, headers=None):
        h = dict(self._headers)
        if headers:
            h.update(headers)
        resp = self._http.request(
            method,
            f"{self._base}{path}",
            params=params,
            json=json,
            data=data,
            headers=h,
            timeout=self._timeout,
        )
        if not resp.ok:
            log.debug("platform %s %s -> %s", method, path, resp.status_code)
        raise_for_response(resp)
        return resp

    @staticmethod
    def _rows(resp) -> list:
        if not resp.content:
            return []
        body = resp.json()
        if isinstance(body, list):
            return body
        return [body] if body else []

    # ---------- tables ----------
    def select(self, table: str, columns: str = "*", filters: Filters = None,
               order: Optional[str] = None, limit: Optional[int] = None) -> list[dict]:
        """order: "created_at.desc" or "full_name.asc,id.asc"."""
        params = [("select", columns)] + filter_params(filters)
        if order:
            params.append(("order", order))
        if limit:
            params.append(("limit", str(int(limit))))
        return self._rows(self._request("GET", f"/rest/v1/{table}", params=params))

    def select_one(self, table: str, columns: str = "*", filters: Filters = None) -> Optional[dict]:
        """Zero rows is a valid outcome (None), not an error."""
        rows = self.select(table, columns, filters, limit=1)
        return rows[0] if rows else None

    def count(self, table: str, filters: Filters = None) -> int:
        params = [("select", "*")] + filter_params(filters)
        resp = self._request("HEAD", f"/rest/v1/{table}", params=params, headers={"Prefer": "count=exact"})
        # Content-Range: 0-9/42  or  */0
        total = (resp.headers.get("Content-Range") or "").rpartition("/")[2]
        return int(total) if total.isdigit() else 0

    def insert(self, table: str, row: dict) -> dict:
        resp = self._request(
            "POST", f"/rest/v1/{table}", json=row,
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(resp)
        return rows[0] if rows else {}

    def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        if not filters:
            raise ValueError("update without filters is not allowed")
        resp = self._request(
            "PATCH", f"/rest/v1/{table}", params=filter_params(filters), json=values,
            headers={"Prefer": "return=representation"},
        )
        return self._rows(resp)

    def upsert(self, table: str, row: dict, on_conflict: str) -> dict:
        resp = self._request(
            "POST", f"/rest/v1/{table}", params=[("on_conflict", on_conflict)], json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        rows = self._rows(resp)
        return rows[0] if rows else {}

    def delete(self, table: str, filters: Filters) -> list[dict]:
        if not filters:
            raise ValueError("delete without filters is not allowed")
        resp = self._request(
            "DELETE", f"/rest/v1/{table}", params=filter_params(filters),
            headers={"Prefer": "return=representation"},
        )
        return self._rows(resp)

    # ---------- storage ----------
    @staticmethod
    def _object_path(bucket: str, path: str) -> str:
        return f"/storage/v1/object/{quote(bucket)}/{quote(path.lstrip('/'), safe='/')}"

    def download(self, bucket: str, path: str) -> StoredObject:
        """Raises NotFoundError when the object is missing."""
        resp = self._request("GET", self._object_path(bucket, path))
        ctype = (resp.headers.get("Content-Type") or "").split(";")[0].strip() or None
        return StoredObject(bucket=bucket, path=path, content=resp.content, content_type=ctype)

    def upload(self, bucket: str, path: str, content: bytes, content_type: str, upsert: bool = False) -> str:
        resp = self._request(
            "POST", self._object_path(bucket, path), data=content,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )
        body = resp.json() if resp.content else {}
        return (body or {}).get("Key") or f"{bucket}/{path}"

    def remove(self, bucket: str, paths: list[str]) -> list[dict]:
        resp = self._request("DELETE", f"/storage/v1/object/{quote(bucket)}", json={"prefixes": list(paths)})
        return self._rows(resp)

    def list_objects(self, bucket: str, prefix: str = "", limit: int = 100) -> list[dict]:
        resp = self._request(
            "POST", f"/storage/v1/object/list/{quote(bucket)}",
            json={"prefix": prefix, "limit": limit, "offset": 0,
                  "sortBy": {"column": "name", "order": "asc"}},
        )
        return self._rows(resp)

    def list_buckets(self) -> list[dict]:
        return self._rows(self._request("GET", "/storage/v1/bucket"))


class AdminChannel(DataChannel):
    """
    Service-role channel. Adds the provider's admin user endpoints.
    Only ever built by Platform._privileged().
    """

    def invite_user_by_email(self, email: str, data: Optional[dict] = None) -> dict:
        resp = self._request("POST", "/auth/v1/invite", json={"email": email, "data": data or {}})
        return resp.json() if resp.content else {}

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/auth/v1/admin/users/{quote(str(user_id))}")

    def update_user_by_id(self, user_id: str, attributes: dict) -> dict:
        resp = self._request("PUT", f"/auth/v1/admin/users/{quote(str(user_id))}", json=attributes)
        return resp.json() if resp.content else {}
