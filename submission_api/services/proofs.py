# submission_api/services/proofs.py
from __future__ import annotations

import logging
from typing import Callable

from werkzeug.datastructures import FileStorage

from submission_api.platform import DataChannel, PlatformError
from submission_api.services.storage_files import read_upload

log = logging.getLogger(__name__)


def store_proof_files(
    channel: DataChannel,
    *,
    bucket: str,
    table: str,
    files: list[FileStorage],
    allowed_types,
    path_for: Callable[[int, FileStorage], str],
    row_for: Callable[[str, FileStorage, int], dict],
) -> tuple[list[dict], list[dict]]:
    """
    Upload each file, then record its metadata row.

    Per-file problems are collected, not raised. When the metadata insert fails
    the object is removed again so storage never holds an unreferenced file.
    Returns (inserted_rows, errors) with errors as {"fileName", "error"}.
    """
    uploaded, errors = [], []
    for i, f in enumerate(files):
        content, problem = read_upload(f, allowed_types)
        if problem:
            errors.append({"fileName": f.filename, "error": problem})
            continue

        path = path_for(i, f)
        try:
            channel.upload(bucket, path, content, f.mimetype)
        except PlatformError as e:
            log.warning("upload %s/%s failed: %s", bucket, path, e.message)
            errors.append({"fileName": f.filename, "error": e.message})
            continue

        try:
            row = channel.insert(table, row_for(path, f, len(content)))
        except PlatformError as e:
            log.warning("metadata insert for %s failed, removing object: %s", path, e.message)
            try:
                channel.remove(bucket, [path])
            except PlatformError:
                log.exception("cleanup of %s/%s failed", bucket, path)
            errors.append({"fileName": f.filename, "error": e.message})
            continue

        uploaded.append(row)
    return uploaded, errors
