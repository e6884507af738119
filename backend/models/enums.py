"""Reusable enums for loan servicing domain models."""

from enum import Enum
from typing import Optional, Union


class StringEnum(str, Enum):
    """Base enum class with string behavior for JSON serialization."""


class UserRole(StringEnum):
    """Role names used for API authorization checks, ordered user < staff < admin."""

    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        """Position of the role in the hierarchy."""
        return _ROLE_ORDER.index(self)

    def subsumes(self, other: "UserRole") -> bool:
        """Return whether this role carries every permission of `other`."""
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Union[str, "UserRole", None]) -> Optional["UserRole"]:
        """Parse a raw role string, returning None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


_ROLE_ORDER = (UserRole.USER, UserRole.STAFF, UserRole.ADMIN)


def has_role(role: Union[str, UserRole, None], required: Union[str, UserRole]) -> bool:
    """Return whether `role` is at least `required`; unknown roles never qualify."""
    actual = UserRole.parse(role)
    needed = UserRole.parse(required)
    if actual is None or needed is None:
        return False
    return actual.subsumes(needed)


class LoanStatus(StringEnum):
    """Loan record lifecycle states."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        """Return whether no further status changes are allowed."""
        return self in {LoanStatus.REJECTED, LoanStatus.COMPLETED}
