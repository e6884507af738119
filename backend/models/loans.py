"""Loan record domain model with EMI schedule, payment ledger and penalty state."""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .base import BaseDocumentModel, Money, utc_now
from .enums import LoanStatus
from .exceptions import ModelValidationError


logger = logging.getLogger(__name__)


class PaymentRecord(BaseModel):
    """One month's EMI payment stored under its ledger key."""

    amount: Money = Field(..., gt=0, allow_inf_nan=False)
    paid_at: datetime = Field(default_factory=utc_now)
    marked_by: str = Field(..., min_length=1)
    penalty_included: bool = Field(default=False)
    penalty_amount: Money = Field(default=0.0, ge=0, allow_inf_nan=False)


class NoteModel(BaseModel):
    """Review note attached to a loan record."""

    id: Optional[str] = Field(default=None)
    created_by: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=1000)
    internal: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)


class ServiceSummary(BaseModel):
    """Financed service embedded in a loan record."""

    id: str
    name: str
    description: Optional[str] = None
    base_fee: Money = Field(default=0.0, ge=0, allow_inf_nan=False)
    active: bool = True
    created_at: Optional[datetime] = None


class StoreSummary(BaseModel):
    """Partner store embedded in a loan record, including staff-only fields."""

    id: str
    name: str
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    address: Optional[str] = None
    active: bool = True
    verified: bool = False
    created_at: Optional[datetime] = None
    owner_pancard: Optional[str] = None
    partner_name: Optional[str] = None
    partner_name_2: Optional[str] = None
    gstin_no: Optional[str] = None
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None


class OwnerSummary(BaseModel):
    """Borrower identity embedded in a loan record."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class LoanRecord(BaseDocumentModel):
    """Represents one customer's financing request and its servicing state."""

    reference_id: Optional[str] = Field(default=None)
    user_id: str = Field(..., min_length=1)
    status: LoanStatus = Field(default=LoanStatus.PENDING)

    service_id: Optional[str] = Field(default=None)
    other_service: Optional[str] = Field(default=None, max_length=200)
    store_id: Optional[str] = Field(default=None)
    other_store: Optional[Dict[str, str]] = Field(default=None)
    amount: Optional[Money] = Field(default=None, gt=0, allow_inf_nan=False)
    timeline: Optional[str] = Field(default=None, max_length=100)
    purpose: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    terms_accepted: bool = Field(default=False)
    terms_accepted_at: Optional[datetime] = Field(default=None)

    staff_assigned: Optional[str] = Field(default=None)
    admin_approved_by: Optional[str] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    service_fee_paid: bool = Field(default=False)
    service_fee_paid_at: Optional[datetime] = Field(default=None)

    emi_started: bool = Field(default=False)
    emi_started_at: Optional[datetime] = Field(default=None)
    emi_date: Optional[int] = Field(default=None, ge=1, le=31)
    emi_percent: Optional[float] = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    tenure_months: Optional[int] = Field(default=None, ge=1, le=60)
    principal_amount: Optional[Money] = Field(default=None, ge=0, allow_inf_nan=False)
    emi_payments: Dict[str, PaymentRecord] = Field(default_factory=dict)

    penalty_amount: Money = Field(default=0.0, ge=0, allow_inf_nan=False)
    penalty_started_at: Optional[datetime] = Field(default=None)
    penalty_waived: bool = Field(default=False)
    penalty_waived_by: Optional[str] = Field(default=None)
    penalty_waived_at: Optional[datetime] = Field(default=None)

    service: Optional[ServiceSummary] = Field(default=None)
    store: Optional[StoreSummary] = Field(default=None)
    owner: Optional[OwnerSummary] = Field(default=None)
    notes: List[NoteModel] = Field(default_factory=list)

    @field_validator("emi_payments", mode="before")
    @classmethod
    def _normalize_payments(cls, value: Any) -> Any:
        """Treat a missing ledger as empty."""
        return value or {}

    @model_validator(mode="after")
    def _validate_penalty_state(self) -> "LoanRecord":
        """An accruing penalty always carries its start timestamp."""
        if self.penalty_amount > 0 and self.penalty_started_at is None:
            logger.error("Loan penalty state invalid id=%s penalty_amount=%s", self.id, self.penalty_amount)
            raise ValueError("penalty_started_at is required while penalty_amount is positive")
        return self

    @property
    def has_active_penalty(self) -> bool:
        """Return whether a penalty is currently outstanding."""
        return self.penalty_amount > 0

    def with_updates(self, **changes: Any) -> "LoanRecord":
        """Return a revalidated copy with `changes` applied as one update.

        Raises:
            ModelValidationError: If the combined state breaks a model rule.
        """
        payload = self.model_dump()
        payload.update(changes)
        try:
            return type(self).model_validate(payload)
        except ValidationError as exc:
            raise ModelValidationError(str(exc))
