"""Repository interfaces for datastore-agnostic model access."""

from abc import ABC, abstractmethod
import logging
from typing import Callable, List, Optional

from .exceptions import ModelNotFoundError, PersistenceError
from .loans import LoanRecord
from .users import ProfileModel


logger = logging.getLogger(__name__)

LoanMutation = Callable[[LoanRecord], LoanRecord]


class LoanRepository(ABC):
    """Loan record data access abstraction."""

    @abstractmethod
    def create(self, model: LoanRecord) -> LoanRecord:
        """Persist a new loan record."""

    @abstractmethod
    def get_by_id(self, model_id: str) -> LoanRecord:
        """Fetch a loan record by identifier.

        Raises:
            ModelNotFoundError: If the record does not exist.
            PersistenceError: If the datastore call fails.
        """

    @abstractmethod
    def update_atomic(self, model_id: str, mutate: LoanMutation) -> LoanRecord:
        """Apply `mutate` to the stored record as one read-modify-write.

        The mutation runs against the freshly read record and its result is
        written in the same transaction. Nothing is written if `mutate`
        raises.

        Raises:
            ModelNotFoundError: If the record does not exist.
            PersistenceError: If the datastore call fails.
        """

    @abstractmethod
    def delete(self, model_id: str) -> None:
        """Delete a loan record."""

    @abstractmethod
    def list_loans(self, user_id: Optional[str] = None, offset: int = 0, limit: int = 100) -> List[LoanRecord]:
        """Return loan records newest first, optionally scoped to one owner."""

    @abstractmethod
    def count(self, user_id: Optional[str] = None) -> int:
        """Count loan records, optionally scoped to one owner."""


class ProfileRepository(ABC):
    """Profile data access abstraction."""

    @abstractmethod
    def create(self, model: ProfileModel) -> ProfileModel:
        """Persist a new profile."""

    @abstractmethod
    def get_by_id(self, model_id: str) -> ProfileModel:
        """Fetch a profile by identifier.

        Raises:
            ModelNotFoundError: If the profile does not exist.
        """

    @abstractmethod
    def list_profiles(self) -> List[ProfileModel]:
        """Return every profile, newest first."""

    @abstractmethod
    def update_fields(self, model_id: str, **changes) -> ProfileModel:
        """Update selected profile fields."""

    @abstractmethod
    def delete(self, model_id: str) -> None:
        """Delete a profile."""


__all__ = [
    "LoanMutation",
    "LoanRepository",
    "ProfileRepository",
    "ModelNotFoundError",
    "PersistenceError",
]
