"""Centralised error handling and custom exceptions.

This module defines custom exception classes and provides
Flask error handlers that serialise them into JSON responses.
By using custom exceptions, the service layer (including the
search pipeline) can signal specific error conditions without
coupling itself to HTTP response codes. The Flask app will
register these handlers during application factory initialisation.
"""
from __future__ import annotations

import logging

from flask import jsonify
from marshmallow import ValidationError as SchemaValidationError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that render as a JSON error body."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message}

    def to_response(self, status_code: int | None = None):
        return jsonify({"error": self.payload()}), status_code or self.status_code


class ValidationError(ApiError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, fields: dict | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message, "fields": self.fields}


class ForbiddenError(ApiError):
    """Raised when the caller may not act on a resource."""

    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(ApiError):
    """Raised when a requested resource cannot be found."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ApiError):
    """Raised when a uniqueness or resource conflict occurs."""

    code = "CONFLICT"
    status_code = 409


class UpstreamError(ApiError):
    """Raised when the data store fails to answer a query."""

    code = "UPSTREAM_FAILURE"
    status_code = 500


class RateLimitedError(ApiError):
    """Rendered when a client exceeds a rate limit."""

    code = "RATE_LIMITED"
    status_code = 429


def load_or_raise(schema, data: dict) -> dict:
    """Load ``data`` with a marshmallow ``schema``.

    Marshmallow's own validation error is converted into
    :class:`ValidationError` so every 400 response has the same shape.
    """
    try:
        return schema.load(data)
    except SchemaValidationError as err:
        raise ValidationError("Invalid request.", fields=err.messages) from err


def register_error_handlers(app) -> None:
    """Register custom error handlers on the given Flask app."""
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return err.to_response(400)

    @app.errorhandler(ForbiddenError)
    def handle_forbidden_error(err: ForbiddenError):
        return err.to_response(403)

    @app.errorhandler(NotFoundError)
    def handle_not_found_error(err: NotFoundError):
        return err.to_response(404)

    @app.errorhandler(ConflictError)
    def handle_conflict_error(err: ConflictError):
        return err.to_response(409)

    @app.errorhandler(UpstreamError)
    def handle_upstream_error(err: UpstreamError):
        logger.error("Upstream failure: %s", err.message)
        return err.to_response(500)

    @app.errorhandler(429)
    def handle_rate_limited(err):
        logger.warning("Rate limit exceeded: %s", err.description)
        return RateLimitedError(f"Too many requests: {err.description}.").to_response(429)
