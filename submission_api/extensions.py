# submission_api/extensions.py
from flask import current_app
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from submission_api.platform import Platform

jwt = JWTManager()
cors = CORS()


def normalize_platform_url(url: str) -> str:
    if not url:
        return url
    url = url.strip().rstrip("/")
    # people paste the REST endpoint instead of the project root
    for suffix in ("/rest/v1", "/auth/v1", "/storage/v1"):
        if url.endswith(suffix):
            url = url[: -len(suffix)]
    return url


def init_platform(app, platform: Platform | None = None):
    if platform is None:
        platform = Platform(
            normalize_platform_url(app.config["PLATFORM_URL"]),
            app.config["PLATFORM_ANON_KEY"],
            app.config["PLATFORM_SERVICE_KEY"],
            timeout=float(app.config["PLATFORM_TIMEOUT"]),
        )
    app.extensions["platform"] = platform
    return platform


def get_platform() -> Platform:
    return current_app.extensions["platform"]
