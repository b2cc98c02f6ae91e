# submission_api/common/errors.py
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from submission_api.platform import PlatformError


class APIError(Exception):
    """Raised inside handlers for 4xx shortcuts; rendered as the usual envelope."""
    def __init__(self, message, status=400, code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.payload = payload


def _envelope(message, status, **extra):
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def platform_failure(e: PlatformError, action: str):
    """Log a platform failure and pass its message through as a 500."""
    current_app.logger.exception("%s failed: %s", action, e.message)
    return _envelope(e.message, 500)


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return _envelope(e.message, e.status, code=e.code, detail=e.payload)

    @app.errorhandler(PlatformError)
    def _platform(e: PlatformError):
        app.logger.exception("unhandled platform error: %s", e.message)
        return _envelope(e.message, 500)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return _envelope(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return _envelope("Internal Server Error", 500)
