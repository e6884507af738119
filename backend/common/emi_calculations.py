"""EMI arithmetic and calendar helpers shared by the servicing services."""

import calendar
from datetime import date, datetime, timezone
import logging
import re
from typing import Any, Dict, Iterable, Optional

from models.base import Money, round_money


logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
COMPLETION_TOLERANCE = 0.99


def calculate_monthly_emi(principal: float, annual_rate: float, tenure_months: int) -> Money:
    """Return the simple-interest monthly installment rounded to two decimals.

    Interest is `principal * rate * months / (100 * 12)` and the total is
    spread evenly over the tenure.

    Args:
        principal: Financed amount.
        annual_rate: Percentage rate per annum.
        tenure_months: Number of monthly installments.

    Raises:
        ValueError: If tenure is not positive.
    """
    if tenure_months <= 0:
        raise ValueError("tenure_months must be positive")
    total_interest = (principal * annual_rate * tenure_months) / (100 * 12)
    return round_money((principal + total_interest) / tenure_months)


def clamp_due_date(year: int, month: int, emi_day: int) -> date:
    """Return day `emi_day` of the month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(emi_day, last_day))


def next_month_due_date(emi_day: int, now: datetime) -> datetime:
    """Return day `emi_day` of the calendar month following `now`, at midnight UTC."""
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    due = clamp_due_date(year, month, emi_day)
    return datetime(due.year, due.month, due.day, tzinfo=timezone.utc)


def should_emi_be_started(emi_started_at: Optional[datetime], now: datetime) -> bool:
    """Return whether the calendar date of `now` has reached the first due date."""
    if emi_started_at is None:
        return False
    return now.date() >= emi_started_at.date()


def ledger_key(month: str, emi_day: int) -> str:
    """Build the ledger key `"{month}-{emi_day:02d}"`, e.g. `2024-03-07`."""
    return "{0}-{1:02d}".format(month, int(emi_day))


def is_valid_month(month: Any) -> bool:
    """Return whether `month` looks like `YYYY-MM`."""
    return isinstance(month, str) and bool(MONTH_PATTERN.match(month))


def current_month_key(emi_day: int, now: datetime) -> str:
    """Return the ledger key of the installment falling due in `now`'s month."""
    return ledger_key("{0:04d}-{1:02d}".format(now.year, now.month), emi_day)


def total_paid(payments: Iterable[Any]) -> Money:
    """Sum payment amounts from PaymentRecord objects or raw dicts."""
    total = 0.0
    for payment in payments:
        amount = payment.get("amount") if isinstance(payment, dict) else getattr(payment, "amount", 0)
        try:
            total += float(amount or 0)
        except (TypeError, ValueError):
            logger.warning("Skipping non-numeric payment amount=%s", amount)
    return round_money(total)


def emi_completion_status(
    principal: Optional[float],
    annual_rate: Optional[float],
    tenure_months: Optional[int],
    payments: Iterable[Any],
    emi_started: bool,
    completed: bool = False,
) -> Dict[str, Any]:
    """Summarize repayment progress for one schedule.

    A schedule counts as complete once payments reach 99% of the expected
    total, or when the loan itself is completed.
    """
    if not emi_started or not principal or not annual_rate or not tenure_months:
        return {
            "is_complete": completed,
            "monthly_emi": 0.0,
            "total_paid": 0.0,
            "total_expected": 0.0,
            "remaining_amount": 0.0,
            "completion_percentage": 100.0 if completed else 0.0,
        }

    monthly_emi = calculate_monthly_emi(principal, annual_rate, tenure_months)
    total_expected = round_money(monthly_emi * tenure_months)
    paid = total_paid(payments)
    percentage = min(100.0, (paid / total_expected) * 100) if total_expected > 0 else 0.0
    return {
        "is_complete": completed or paid >= total_expected * COMPLETION_TOLERANCE,
        "monthly_emi": monthly_emi,
        "total_paid": paid,
        "total_expected": total_expected,
        "remaining_amount": round_money(max(0.0, total_expected - paid)),
        "completion_percentage": round(percentage, 2),
    }
