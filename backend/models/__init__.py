"""Public model package exports for the loan servicing backend."""

from .base import BaseDocumentModel, Money, is_finite_number, round_money, utc_now
from .enums import LoanStatus, UserRole, has_role
from .exceptions import (
    BlockedError,
    ForbiddenError,
    ModelNotFoundError,
    ModelValidationError,
    PersistenceError,
    PreconditionError,
    SelfActionError,
    ServicingError,
    UnauthenticatedError,
)
from .loans import LoanRecord, NoteModel, OwnerSummary, PaymentRecord, ServiceSummary, StoreSummary
from .repositories import LoanMutation, LoanRepository, ProfileRepository
from .users import Principal, ProfileModel

__all__ = [
    "BaseDocumentModel",
    "Money",
    "round_money",
    "is_finite_number",
    "utc_now",
    "LoanStatus",
    "UserRole",
    "has_role",
    "ServicingError",
    "UnauthenticatedError",
    "BlockedError",
    "ForbiddenError",
    "SelfActionError",
    "ModelValidationError",
    "PreconditionError",
    "ModelNotFoundError",
    "PersistenceError",
    "LoanRecord",
    "PaymentRecord",
    "NoteModel",
    "ServiceSummary",
    "StoreSummary",
    "OwnerSummary",
    "LoanMutation",
    "LoanRepository",
    "ProfileRepository",
    "Principal",
    "ProfileModel",
]
