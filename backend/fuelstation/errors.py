# Overview: Error taxonomy shared by services and routes.

"""
Workflow errors.

Every error carries the HTTP status the API answers with and a stable
`code` clients can switch on. Services raise these; routes render them with
`error_response`.
"""

from flask import jsonify


class WorkflowError(Exception):
    """Base class for expected, caller-visible failures."""
    status_code = 400
    code = "workflow_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


# -- 400 --

class ValidationError(WorkflowError, ValueError):
    """Bad input; nothing was written."""
    status_code = 400
    code = "validation_error"


class InvalidRate(ValidationError):
    code = "invalid_rate"


class MissingReason(ValidationError):
    code = "missing_reason"

    @classmethod
    def default_message(cls) -> str:
        return "A rejection reason is required"


class InvalidParticipants(ValidationError):
    code = "invalid_participants"


# -- 401 / 403 / 404 --

class AuthenticationRequired(WorkflowError):
    status_code = 401
    code = "authentication_required"

    @classmethod
    def default_message(cls) -> str:
        return "Authentication required"


class PermissionDenied(WorkflowError):
    status_code = 403
    code = "permission_denied"

    @classmethod
    def default_message(cls) -> str:
        return "Permission denied"


class NotFoundError(WorkflowError):
    status_code = 404
    code = "not_found"


# -- 409 --

class ConflictError(WorkflowError):
    """Business rule conflict; retrying the same input will fail again."""
    status_code = 409
    code = "conflict"


class DuplicateActiveDiscount(ConflictError):
    code = "duplicate_discount"

    @classmethod
    def default_message(cls) -> str:
        return "This plate is already on the discount list"


class DuplicatePendingRequest(ConflictError):
    code = "duplicate_pending_request"

    @classmethod
    def default_message(cls) -> str:
        return "A pending request already exists for this plate"


class DuplicateUser(ConflictError):
    code = "duplicate_user"

    @classmethod
    def default_message(cls) -> str:
        return "A user with this email already exists"


class StaleStateError(ConflictError):
    """The row moved on since the caller looked at it; refresh and retry."""
    code = "stale_state"


class AlreadyProcessed(StaleStateError):
    code = "already_processed"

    @classmethod
    def default_message(cls) -> str:
        return "This request has already been processed"


class AlreadyDecided(StaleStateError):
    code = "already_decided"

    @classmethod
    def default_message(cls) -> str:
        return "This handover has already been decided"


# -- 503 --

class StoreUnavailable(WorkflowError):
    """The database call failed; the operation should be treated as not performed."""
    status_code = 503
    code = "store_unavailable"

    @classmethod
    def default_message(cls) -> str:
        return "The service is temporarily unavailable, please try again"


def error_response(exc: WorkflowError):
    return jsonify(exc.to_dict()), exc.status_code
