import logging
from typing import Optional

from quart import jsonify

_logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base error surfaced to HTTP callers as a status code and a short JSON message."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.code, "message": self.message}


class BadRequest(ApiError):
    status_code = 400
    code = "bad_request"
    default_message = "Bad request"


class Unauthorized(ApiError):
    status_code = 401
    code = "unauthorized"
    default_message = "Invalid credentials"


class Forbidden(ApiError):
    status_code = 403
    code = "forbidden"
    default_message = "Not allowed"


class NotFound(ApiError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    code = "conflict"
    default_message = "Already exists"


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    async def handle_api_error(err: ApiError):
        _logger.info("Request failed | status=%s error=%s message=%s", err.status_code, err.code, err.message)
        return jsonify(err.to_dict()), err.status_code
