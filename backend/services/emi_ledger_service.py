"""EMI payment ledger: records monthly payments and discharges penalty state."""

from datetime import datetime
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from common.emi_calculations import is_valid_month, ledger_key
from models.base import is_finite_number, round_money, utc_now
from models.exceptions import ModelValidationError, PreconditionError
from models.loans import LoanRecord, PaymentRecord


logger = logging.getLogger(__name__)


class EmiLedgerService:
    """Writes ledger entries keyed by `{month}-{emi_date:02d}`."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    def record_payment(
        self,
        record: LoanRecord,
        month: Any,
        amount: Any,
        actor: str,
        now: Optional[datetime] = None,
    ) -> LoanRecord:
        """Record one month's payment and reset every penalty field.

        An existing entry under the same key is overwritten. The penalty
        outstanding before the call is captured into the entry.

        Raises:
            ModelValidationError: If month is malformed or amount is not a positive finite number.
            PreconditionError: If the record has no EMI due day.
        """
        if not is_valid_month(month):
            raise ModelValidationError("Month must be formatted as YYYY-MM")
        if not is_finite_number(amount) or round_money(amount) <= 0:
            raise ModelValidationError("Amount must be a positive number")
        if record.emi_date is None:
            raise PreconditionError("EMI date is not configured for this query")

        key = ledger_key(month, record.emi_date)
        penalty_included = record.penalty_amount > 0
        try:
            entry = PaymentRecord(
                amount=round_money(amount),
                paid_at=now or self._clock(),
                marked_by=actor,
                penalty_included=penalty_included,
                penalty_amount=record.penalty_amount if penalty_included else 0.0,
            )
        except ValidationError as exc:
            raise ModelValidationError(str(exc))
        if key in record.emi_payments:
            logger.warning("Overwriting EMI payment loan_id=%s key=%s", record.id, key)

        payments = dict(record.emi_payments)
        payments[key] = entry
        logger.info(
            "Recorded EMI payment loan_id=%s key=%s amount=%s penalty_included=%s actor=%s",
            record.id,
            key,
            entry.amount,
            penalty_included,
            actor,
        )
        return record.with_updates(
            emi_payments=payments,
            penalty_amount=0.0,
            penalty_started_at=None,
            penalty_waived=False,
            penalty_waived_by=None,
            penalty_waived_at=None,
        )
