"""EMI schedule settings: validation, configuration, start and service-fee bookkeeping."""

from datetime import datetime
import logging
from typing import Any, Callable, Mapping, Optional, Tuple

from pydantic import BaseModel

from common.emi_calculations import next_month_due_date, should_emi_be_started
from models.base import is_finite_number, utc_now
from models.exceptions import ModelValidationError, PreconditionError
from models.loans import LoanRecord


logger = logging.getLogger(__name__)

EMI_DATE_RANGE = (1, 31)
EMI_PERCENT_RANGE = (0, 100)
TENURE_MONTHS_RANGE = (1, 60)


class EmiSettings(BaseModel):
    """Validated repayment schedule parameters."""

    emi_date: int
    emi_percent: float
    tenure_months: int


def validate_emi_settings(payload: Mapping[str, Any]) -> EmiSettings:
    """Validate raw schedule input against the documented bounds.

    All three fields are required and must be truthy; a zero percentage is
    therefore rejected even though the bound itself starts at 0.

    Raises:
        ModelValidationError: If a field is missing, falsy, not a finite number or out of bounds.
    """
    emi_date = payload.get("emi_date")
    emi_percent = payload.get("emi_percent")
    tenure_months = payload.get("tenure_months")

    if not emi_date or not emi_percent or not tenure_months:
        raise ModelValidationError("EMI date, percentage, and tenure are required")
    if not all(is_finite_number(value) for value in (emi_date, emi_percent, tenure_months)):
        raise ModelValidationError("EMI date, percentage, and tenure must be numeric")
    if int(emi_date) != emi_date or int(tenure_months) != tenure_months:
        raise ModelValidationError("EMI date and tenure must be whole numbers")

    if not EMI_DATE_RANGE[0] <= emi_date <= EMI_DATE_RANGE[1]:
        raise ModelValidationError("EMI date must be between 1 and 31")
    if not EMI_PERCENT_RANGE[0] <= emi_percent <= EMI_PERCENT_RANGE[1]:
        raise ModelValidationError("EMI percentage must be between 0 and 100")
    if not TENURE_MONTHS_RANGE[0] <= tenure_months <= TENURE_MONTHS_RANGE[1]:
        raise ModelValidationError("Tenure must be between 1 and 60 months")

    return EmiSettings(emi_date=int(emi_date), emi_percent=float(emi_percent), tenure_months=int(tenure_months))


class EmiSettingsService:
    """Applies schedule settings to loan records without touching persistence."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    def configure(self, record: LoanRecord, payload: Mapping[str, Any]) -> LoanRecord:
        """Store new schedule parameters, keeping the existing `emi_started_at` anchor."""
        settings = validate_emi_settings(payload)
        logger.info(
            "Configuring EMI loan_id=%s emi_date=%s emi_percent=%s tenure_months=%s",
            record.id,
            settings.emi_date,
            settings.emi_percent,
            settings.tenure_months,
        )
        return record.with_updates(**settings.model_dump())

    def start(self, record: LoanRecord, payload: Mapping[str, Any], now: Optional[datetime] = None) -> LoanRecord:
        """Start repayment: first due date is day `emi_date` of next calendar month.

        Raises:
            ModelValidationError: If the settings are invalid.
            PreconditionError: If the service fee has not been paid.
        """
        settings = validate_emi_settings(payload)
        if not record.service_fee_paid:
            raise PreconditionError("Service fee must be paid before starting EMI")

        current = now or self._clock()
        first_due = next_month_due_date(settings.emi_date, current)
        logger.info("Starting EMI loan_id=%s first_due=%s", record.id, first_due.date().isoformat())
        return record.with_updates(
            emi_started=False,
            emi_started_at=first_due,
            principal_amount=record.principal_amount or record.amount,
            **settings.model_dump(),
        )

    def mark_service_fee(self, record: LoanRecord, paid: bool, now: Optional[datetime] = None) -> LoanRecord:
        """Record whether the service fee has been paid."""
        paid_at = (now or self._clock()) if paid else None
        logger.info("Service fee loan_id=%s paid=%s", record.id, paid)
        return record.with_updates(service_fee_paid=paid, service_fee_paid_at=paid_at)

    def sync_emi_started(self, record: LoanRecord, now: Optional[datetime] = None) -> Tuple[LoanRecord, bool]:
        """Align `emi_started` with whether the first due date has arrived.

        Returns:
            Tuple of the (possibly updated) record and whether it changed.
        """
        if record.emi_started_at is None:
            return record, False
        started = should_emi_be_started(record.emi_started_at, now or self._clock())
        if started == record.emi_started:
            return record, False
        return record.with_updates(emi_started=started), True
