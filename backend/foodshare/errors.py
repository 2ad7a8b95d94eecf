"""Domain errors raised by the service layer and their HTTP mapping.

Services never build responses; they raise one of the classes below and the
handlers registered by :func:`register_error_handlers` turn it into
``{"error": message}`` with the matching status code.
"""
from __future__ import annotations

import logging

from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from .extensions import db

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthenticated(DomainError):
    status_code = 401
    default_message = "You must be logged in to perform this action"


class Forbidden(DomainError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFound(DomainError):
    status_code = 404
    default_message = "Not found"


class InvalidState(DomainError):
    status_code = 400
    default_message = "Action is not valid in the current state"


class InvalidInput(DomainError):
    status_code = 400
    default_message = "Invalid input"


class InvalidCode(DomainError):
    status_code = 400
    default_message = "Invalid handover code"


class Conflict(DomainError):
    status_code = 409
    default_message = "Conflicting request"


def _json_error(message: str, status: int = 400, **extra):
    return jsonify({"error": message, **extra}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(err: DomainError):
        return _json_error(err.message, err.status_code)

    @app.errorhandler(ValidationError)
    def _validation_error(err: ValidationError):
        return _json_error("Validation failed", 400, details=err.messages)

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return _json_error(err.description or err.name, err.code or 500)

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        logger.exception("Unhandled error: %s", err)
        return _json_error("Internal server error", 500)
