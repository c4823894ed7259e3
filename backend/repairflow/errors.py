"""Typed failures raised by the workflow operations.

Every operation surfaces one of these to its caller; the HTTP layer turns them
into JSON error bodies through :func:`register_error_handlers`.
"""
import logging

from flask import Flask, jsonify

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Base class for all workflow failures."""

    status_code = 400
    code = "workflow_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(WorkflowError):
    """Enquiry, item or service assignment missing, or not in the expected stage."""

    status_code = 404
    code = "not_found"


class PreconditionFailed(WorkflowError):
    """A stage guard was violated; nothing was written."""

    status_code = 409
    code = "precondition_failed"


class ValidationError(WorkflowError):
    """Malformed or out-of-range input."""

    status_code = 422
    code = "validation_error"


class ConflictError(WorkflowError):
    """The record already exists or was changed by a concurrent writer."""

    status_code = 409
    code = "conflict"


def register_error_handlers(app: Flask):
    @app.errorhandler(WorkflowError)
    def handle_workflow_error(exc: WorkflowError):
        logger.info("%s: %s", exc.code, exc.message)
        return jsonify({"error": exc.code, "message": exc.message}), exc.status_code
