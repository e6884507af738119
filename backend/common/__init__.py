"""Common reusable utility exports."""

from .emi_calculations import (
    calculate_monthly_emi,
    current_month_key,
    emi_completion_status,
    is_valid_month,
    ledger_key,
    next_month_due_date,
    should_emi_be_started,
    total_paid,
)

__all__ = [
    "calculate_monthly_emi",
    "current_month_key",
    "emi_completion_status",
    "is_valid_month",
    "ledger_key",
    "next_month_due_date",
    "should_emi_be_started",
    "total_paid",
]
