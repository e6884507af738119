"""Late-payment penalty accrual and waiver."""

from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, timezone
import logging
from typing import Callable, Optional, Tuple

from common.emi_calculations import (
    calculate_monthly_emi,
    clamp_due_date,
    current_month_key,
    emi_completion_status,
)
from models.base import Money, round_money, utc_now
from models.enums import LoanStatus
from models.loans import LoanRecord


logger = logging.getLogger(__name__)


class PenaltyStrategy(ABC):
    """Computes the penalty currently owed on a loan record."""

    @abstractmethod
    def compute(self, record: LoanRecord, now: datetime) -> Money:
        """Return the penalty amount for `record` at `now`; must be deterministic."""


class DailyRatePenaltyStrategy(PenaltyStrategy):
    """Charges a fixed share of the monthly EMI per day overdue after a grace window.

    Nothing accrues before the schedule starts, once repayment is complete,
    or when this month's installment is already in the ledger.
    """

    def __init__(self, daily_rate_bps: int = 200, grace_days: int = 3) -> None:
        if daily_rate_bps < 0 or grace_days < 0:
            raise ValueError("daily_rate_bps and grace_days must be non-negative")
        self._daily_rate = daily_rate_bps / 10000
        self._grace = timedelta(days=grace_days)

    def days_overdue(self, emi_day: int, now: datetime) -> int:
        """Whole days elapsed since this month's grace window closed."""
        due = clamp_due_date(now.year, now.month, emi_day)
        penalty_start = datetime.combine(due, time.min, tzinfo=timezone.utc) + self._grace
        if now <= penalty_start:
            return 0
        return (now - penalty_start).days

    def compute(self, record: LoanRecord, now: datetime) -> Money:
        if record.status in {LoanStatus.COMPLETED, LoanStatus.REJECTED}:
            return 0.0
        if record.emi_date is None or record.emi_started_at is None or now < record.emi_started_at:
            return 0.0
        principal = record.principal_amount or record.amount
        if not principal or not record.emi_percent or not record.tenure_months:
            return 0.0
        if current_month_key(record.emi_date, now) in record.emi_payments:
            return 0.0
        status = emi_completion_status(
            principal,
            record.emi_percent,
            record.tenure_months,
            record.emi_payments.values(),
            emi_started=True,
        )
        if status["is_complete"]:
            return 0.0

        days = self.days_overdue(record.emi_date, now)
        emi_amount = calculate_monthly_emi(principal, record.emi_percent, record.tenure_months)
        return round_money(emi_amount * self._daily_rate * days)


class PenaltyEngine:
    """Applies a penalty strategy to loan records and handles waivers."""

    def __init__(self, strategy: PenaltyStrategy, clock: Callable[[], datetime] = utc_now) -> None:
        self._strategy = strategy
        self._clock = clock

    def accrue(self, record: LoanRecord, now: Optional[datetime] = None) -> Tuple[LoanRecord, Money]:
        """Recompute the penalty and keep `penalty_started_at` tied to the current cycle.

        The start timestamp is set when a penalty first turns positive and is
        cleared once accrual drops back to zero. A waived penalty stays at
        zero until a payment clears the waiver.

        Returns:
            Tuple of the updated record and the new penalty amount.
        """
        current = now or self._clock()
        if record.penalty_waived:
            logger.info("Penalty accrual skipped for waived loan_id=%s", record.id)
            return record, record.penalty_amount

        amount = round_money(max(0.0, self._strategy.compute(record, current)))
        changes = {"penalty_amount": amount}
        if amount <= 0:
            changes["penalty_started_at"] = None
        elif record.penalty_amount <= 0 or record.penalty_started_at is None:
            changes["penalty_started_at"] = current
            logger.info("Penalty started loan_id=%s amount=%s", record.id, amount)
        return record.with_updates(**changes), amount

    def waive(self, record: LoanRecord, actor: str, now: Optional[datetime] = None) -> LoanRecord:
        """Zero an active penalty and record the waiver; no-op when nothing is owed.

        `penalty_started_at` is left as the last accrual set it.
        """
        if not record.has_active_penalty:
            logger.info("Waive requested with no active penalty loan_id=%s", record.id)
            return record
        logger.info("Waiving penalty loan_id=%s amount=%s actor=%s", record.id, record.penalty_amount, actor)
        return record.with_updates(
            penalty_amount=0.0,
            penalty_waived=True,
            penalty_waived_by=actor,
            penalty_waived_at=now or self._clock(),
        )
