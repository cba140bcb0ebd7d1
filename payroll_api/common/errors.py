# payroll_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail
from payroll_api.extensions import db

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None, code=None, status_code=None, payload=None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.payload = payload

    @property
    def reason(self) -> str:
        return self.message


class NotFound(APIError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class InvalidState(APIError):
    code = "invalid_state"
    status_code = 422
    default_message = "Resource is not in a valid state for this operation"


class Conflict(APIError):
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class ValidationError(APIError):
    code = "validation_error"
    status_code = 400
    default_message = "Validation error"

    def __init__(self, message=None, errors=None, **kw):
        super().__init__(message, **kw)
        # [{"field": ..., "message": ...}, ...]
        self.errors = errors or []


class Unexpected(APIError):
    code = "unexpected"
    status_code = 500
    default_message = "Unexpected server error"


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    if e.status_code >= 500:
        current_app.logger.error("API error %s: %s", e.code, e.message)
    return fail(
        message=e.message,
        status=e.status_code,
        code=e.code,
        detail=e.payload,
        errors=getattr(e, "errors", None),
    )

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    db.session.rollback()
    return fail(message="Conflict / integrity error", status=409, code="constraint_error",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500, code=Unexpected.code)
