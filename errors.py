"""
Exception classes and JSON error handlers for the BlogSpace API.

Every error the API reports on purpose is a BlogSpaceError carrying the HTTP
status it maps to. register_error_handlers() turns these, schema validation
failures, werkzeug HTTP errors and anything unexpected into the common
``{"success": false, "error": ...}`` envelope.
"""

import logging
import traceback

from flask import current_app, jsonify
from pydantic import ValidationError as SchemaError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class BlogSpaceError(Exception):
    """Base exception for all errors reported to API clients."""
    status_code = 500
    message = 'Internal Server Error'

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors


class ValidationError(BlogSpaceError):
    """Raised when request input is malformed or out of range."""
    status_code = 400
    message = 'Validation Error'


class AuthenticationError(BlogSpaceError):
    """Raised when credentials or the session token are missing or invalid."""
    status_code = 401
    message = 'Not authenticated'


class AuthorizationError(BlogSpaceError):
    """Raised when an authenticated user may not act on a resource."""
    status_code = 403
    message = 'Not authorized'


class NotFoundError(BlogSpaceError):
    """Raised when a resource is absent or deliberately hidden."""
    status_code = 404
    message = 'Not found'


class ConflictError(BlogSpaceError):
    """Raised when a unique value or relation already exists."""
    status_code = 400
    message = 'Already exists'


class UnexpectedError(BlogSpaceError):
    """Raised when a collaborator fails in a way the client cannot fix."""
    status_code = 500


def error_response(message, status_code, **extra):
    body = {"success": False, "error": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status_code


def schema_errors(exc):
    """Flatten a pydantic ValidationError into field/message pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or None,
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def _is_production():
    return current_app.config.get('ENV_NAME') == 'production'


def register_error_handlers(app):
    """Install the JSON error handlers on the Flask app."""

    @app.errorhandler(BlogSpaceError)
    def handle_blogspace_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error.message}")
        return error_response(error.message, error.status_code, errors=error.errors)

    @app.errorhandler(SchemaError)
    def handle_schema_error(error):
        return error_response('Validation Error', 400, errors=schema_errors(error))

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 413:
            return error_response('File size limit has been reached', 413)
        if error.code == 404:
            return error_response('API endpoint not found', 404)
        return error_response(error.description or error.name, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled error: {error}")
        if _is_production():
            return error_response('Internal Server Error', 500)
        return error_response(
            'Internal Server Error',
            500,
            details=str(error),
            traceback=traceback.format_exc(),
        )
