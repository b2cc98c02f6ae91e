# submission_api/platform/__init__.py
from submission_api.platform.errors import PlatformError, NotFoundError, ConflictError
from submission_api.platform.channel import DataChannel, AdminChannel, StoredObject, filter_params
from submission_api.platform.auth import AuthClient
from submission_api.platform.client import Platform, EmailDirectory

__all__ = [
    "PlatformError", "NotFoundError", "ConflictError",
    "DataChannel", "AdminChannel", "StoredObject", "filter_params",
    "AuthClient", "Platform", "EmailDirectory",
]
