"""Custom exceptions for model, repository and servicing layers."""

from typing import Optional


class ServicingError(Exception):
    """Base class for loan servicing failures with a stable error kind."""

    kind = "servicing_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        """Return the caller-facing error body."""
        return {"kind": self.kind, "message": self.message}


class UnauthenticatedError(ServicingError):
    """Raised when no valid credential resolves to a principal."""

    kind = "unauthenticated"
    default_message = "Unauthorized"
    status_code = 401


class BlockedError(ServicingError):
    """Raised when the principal's account is blocked."""

    kind = "blocked"
    default_message = "Account is blocked"
    status_code = 403
    redirect_path = "/blocked"

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["redirect"] = self.redirect_path
        return payload


class ForbiddenError(ServicingError):
    """Raised when the principal lacks the required role and ownership."""

    kind = "forbidden"
    default_message = "Forbidden"
    status_code = 403


class SelfActionError(ServicingError):
    """Raised when an actor targets their own account with a disallowed action."""

    kind = "self_action"
    default_message = "Action not allowed on your own account"
    status_code = 400


class ModelValidationError(ServicingError):
    """Raised when model data fails custom business validation."""

    kind = "validation_error"
    default_message = "Invalid input data"
    status_code = 400


class PreconditionError(ServicingError):
    """Raised when a required prior state is missing."""

    kind = "precondition_failed"
    default_message = "Required prior state is missing"
    status_code = 400


class ModelNotFoundError(ServicingError):
    """Raised when a requested document does not exist."""

    kind = "not_found"
    default_message = "Not found"
    status_code = 404


class PersistenceError(ServicingError):
    """Raised when a datastore call fails."""

    kind = "persistence_error"
    default_message = "Failed to persist changes"
    status_code = 500
