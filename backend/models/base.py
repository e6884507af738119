"""Shared base models and common type aliases."""

from datetime import datetime, timezone
import logging
import math
from numbers import Number
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ModelValidationError


logger = logging.getLogger(__name__)

Money = float


def utc_now() -> datetime:
    """Return current UTC timestamp."""
    return datetime.now(timezone.utc)


def round_money(value: float) -> Money:
    """Round a currency amount to two decimal places."""
    return round(float(value), 2)


def is_finite_number(value: Any) -> bool:
    """Return whether `value` is a real, finite number; booleans do not count."""
    if not isinstance(value, Number) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except (OverflowError, TypeError):
        return False


class BaseDocumentModel(BaseModel):
    """Base document schema for Firestore-backed domain models."""

    id: Optional[str] = Field(default=None, description="Firestore document ID.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=1, ge=1)
    is_deleted: bool = Field(default=False)

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=False,
    )

    def to_firestore(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Serialize model into a Firestore-ready document dictionary.

        Nulls are kept by default so a full-document write clears fields
        such as `penalty_started_at`.

        Returns:
            Dict[str, Any]: Serialized model payload.

        Raises:
            ModelValidationError: If serialization fails.
        """
        try:
            return self.model_dump(exclude_none=exclude_none)
        except Exception as exc:
            logger.exception("Failed to serialize %s with id=%s", self.__class__.__name__, self.id)
            raise ModelValidationError(str(exc))

    @classmethod
    def from_firestore(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> "BaseDocumentModel":
        """Create model instance from Firestore document data.

        Args:
            data: Firestore document payload.
            doc_id: Optional Firestore document id.

        Returns:
            BaseDocumentModel: Typed domain instance.

        Raises:
            ModelValidationError: If payload parsing fails.
        """
        try:
            payload = dict(data)
            if doc_id is not None and not payload.get("id"):
                payload["id"] = doc_id
            return cls(**payload)
        except Exception as exc:
            logger.exception("Failed to parse Firestore payload for %s doc_id=%s", cls.__name__, doc_id)
            raise ModelValidationError(str(exc))
