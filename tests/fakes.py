"""
In-memory stand-in for the hosted platform.

Mirrors the DataChannel / AdminChannel / AuthClient surface closely enough for
the blueprints: same filter encoding (plain value = eq, None = is null,
(op, value) tuples), same "order" strings, and the same error classes.
Row-level policies are not modelled.
"""
from __future__ import annotations

import itertools
from collections import defaultdict
from typing import Mapping

from submission_api.platform import ConflictError, EmailDirectory, NotFoundError, PlatformError, StoredObject

# (table) -> columns that must be unique together
UNIQUE = {
    "absensi": ("user_id", "tanggal"),
    "system_settings": ("key",),
}


def _items(filters):
    if not filters:
        return []
    return list(filters.items()) if isinstance(filters, Mapping) else list(filters)


def _cond(cond):
    if isinstance(cond, tuple) and len(cond) == 2 and isinstance(cond[0], str):
        return cond
    if cond is None:
        return "is", None
    return "eq", cond


def _same(a, b) -> bool:
    return a == b or (a is not None and b is not None and str(a) == str(b))


def _match(row: dict, filters) -> bool:
    for col, raw in _items(filters):
        op, val = _cond(raw)
        have = row.get(col)
        if op == "eq" and not _same(have, val):
            return False
        if op == "neq" and _same(have, val):
            return False
        if op == "is" and have is not val:
            return False
        if op == "not.is" and have is val:
            return False
        if op == "in" and not any(_same(have, v) for v in val):
            return False
        if op == "not.in" and any(_same(have, v) for v in val):
            return False
        if op in ("gte", "lte", "gt", "lt"):
            if have is None:
                return False
            h, v = str(have), str(val)
            if (op == "gte" and h < v) or (op == "lte" and h > v) or (op == "gt" and h <= v) or (op == "lt" and h >= v):
                return False
    return True


def _ordered(rows: list[dict], order: str | None) -> list[dict]:
    if not order:
        return rows
    for part in reversed(order.split(",")):
        col, _, direction = part.partition(".")
        rows = sorted(rows, key=lambda r: (r.get(col) is None, str(r.get(col) or "")), reverse=direction == "desc")
    return rows


class FakeChannel:
    def __init__(self, platform: "FakePlatform", token=None, privileged=False):
        self.p = platform
        self.token = token
        self.privileged = privileged

    def _check(self, op: str):
        err = self.p.failures.get(op)
        if err is not None:
            raise err

    # ---------- tables ----------
    def select(self, table, columns="*", filters=None, order=None, limit=None):
        self._check("select")
        rows = [dict(r) for r in self.p.tables[table] if _match(r, filters)]
        rows = _ordered(rows, order)
        return rows[:limit] if limit else rows

    def select_one(self, table, columns="*", filters=None):
        rows = self.select(table, columns, filters, limit=1)
        return rows[0] if rows else None

    def count(self, table, filters=None):
        return len(self.select(table, "*", filters))

    def insert(self, table, row):
        self._check("insert")
        self._check(f"insert:{table}")
        row = dict(row)
        keys = UNIQUE.get(table)
        if keys and any(all(_same(r.get(k), row.get(k)) for k in keys) for r in self.p.tables[table]):
            raise ConflictError("duplicate key value violates unique constraint", code="23505")
        row.setdefault("id", next(self.p.ids))
        self.p.tables[table].append(row)
        return dict(row)

    def update(self, table, values, filters):
        if not filters:
            raise ValueError("update without filters is not allowed")
        self._check("update")
        self._check(f"update:{table}")
        out = []
        for r in self.p.tables[table]:
            if _match(r, filters):
                r.update(values)
                out.append(dict(r))
        return out

    def upsert(self, table, row, on_conflict):
        self._check("upsert")
        for r in self.p.tables[table]:
            if _same(r.get(on_conflict), row.get(on_conflict)):
                r.update(row)
                return dict(r)
        return self.insert(table, row)

    def delete(self, table, filters):
        self._check("delete")
        keep, gone = [], []
        for r in self.p.tables[table]:
            (gone if _match(r, filters) else keep).append(r)
        self.p.tables[table] = keep
        return gone

    # ---------- storage ----------
    def download(self, bucket, path):
        self.p.downloads.append((bucket, path))
        self._check("download")
        if (bucket, path) not in self.p.objects:
            raise NotFoundError("Object not found")
        content, ctype = self.p.objects[(bucket, path)]
        return StoredObject(bucket, path, content, ctype)

    def upload(self, bucket, path, content, content_type, upsert=False):
        self._check("upload")
        if (bucket, path) in self.p.objects and not upsert:
            raise ConflictError("The resource already exists")
        self.p.objects[(bucket, path)] = (content, content_type)
        return f"{bucket}/{path}"

    def remove(self, bucket, paths):
        self._check("remove")
        for path in paths:
            self.p.objects.pop((bucket, path), None)
        return [{"name": p} for p in paths]

    def list_objects(self, bucket, prefix="", limit=100):
        self._check("list_objects")
        return [{"name": p, "id": p} for (b, p) in self.p.objects if b == bucket and p.startswith(prefix)][:limit]

    def list_buckets(self):
        self._check("list_buckets")
        return [{"name": b} for b in sorted({b for (b, _) in self.p.objects})]

    # ---------- admin auth endpoints ----------
    def _admin_only(self):
        assert self.privileged, "admin endpoint used on a caller channel"

    def invite_user_by_email(self, email, data=None):
        self._admin_only()
        self._check("invite_user_by_email")
        self.p.invites.append((email, data or {}))
        return {"email": email}

    def delete_user(self, user_id):
        self._admin_only()
        self._check("delete_user")
        self.p.deleted_users.append(user_id)
        self.p.tables["profiles"] = [r for r in self.p.tables["profiles"] if r.get("id") != user_id]

    def update_user_by_id(self, user_id, attributes):
        self._admin_only()
        self._check("update_user_by_id")
        self.p.user_metadata[user_id] = attributes.get("user_metadata", {})
        return {"id": user_id}


class FakeAuth:
    def __init__(self):
        self.passwords = {}     # email -> (password, session)
        self.refresh = {}       # refresh_token -> session
        self.signed_out = []

    def get_user(self, token):
        return None

    def sign_in_with_password(self, email, password):
        stored = self.passwords.get(email)
        if not stored or stored[0] != password:
            raise PlatformError("Invalid login credentials", status=400)
        return stored[1]

    def refresh_session(self, refresh_token):
        session = self.refresh.pop(refresh_token, None)
        if session is None:
            raise PlatformError("Invalid Refresh Token", status=400)
        return session

    def sign_out(self, token):
        self.signed_out.append(token)


class FakePlatform:
    def __init__(self, service_key=True):
        self.tables = defaultdict(list)
        self.objects = {}
        self.downloads = []
        self.invites = []
        self.deleted_users = []
        self.user_metadata = {}
        self.failures = {}
        self.privileged_built = 0
        self.service_key = service_key
        self.ids = itertools.count(1)
        self.auth = FakeAuth()

    # ---------- seeding ----------
    def add_profile(self, uid, role="employee", full_name=None, email=None, **extra):
        row = {"id": uid, "role": role, "full_name": full_name or uid, **extra}
        self.tables["profiles"].append(row)
        if email:
            self.tables["user_profiles_with_email"].append({"id": uid, "email": email, "full_name": row["full_name"]})
        return row

    def fail(self, op, error=None):
        self.failures[op] = error or PlatformError("upstream exploded", status=500)

    # ---------- Platform surface ----------
    def for_caller(self, token):
        return FakeChannel(self, token=token)

    def _privileged(self):
        if not self.service_key:
            raise PlatformError("service role key is not configured", status=500, code="config.service_key")
        self.privileged_built += 1
        return FakeChannel(self, privileged=True)

    def email_directory(self):
        return EmailDirectory(self._privileged())
