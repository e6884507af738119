"""Loan servicing orchestration: authorize, mutate atomically, project by role."""

from datetime import datetime
import logging
import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

from common.emi_calculations import emi_completion_status
from models.base import utc_now
from models.enums import LoanStatus, UserRole
from models.exceptions import ModelValidationError, PreconditionError
from models.loans import LoanRecord, NoteModel, OwnerSummary
from models.repositories import LoanRepository
from models.users import Principal
from services.authorization import AuthorizationGate, project_loan
from services.emi_ledger_service import EmiLedgerService
from services.emi_settings_service import EmiSettingsService, validate_emi_settings
from services.penalty_service import PenaltyEngine


logger = logging.getLogger(__name__)

_UNSAFE_TEXT = re.compile(r"[<>'\"\\]|;|--")
USER_LOANS_LIMIT = 1000


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip markup, quotes and SQL comment characters from free text."""
    if value is None:
        return None
    cleaned = _UNSAFE_TEXT.sub("", value.strip())
    return cleaned or None


class LoanServicingService:
    """Entry point for every loan record operation exposed over HTTP."""

    def __init__(
        self,
        loan_repository: LoanRepository,
        gate: AuthorizationGate,
        settings_service: EmiSettingsService,
        ledger_service: EmiLedgerService,
        penalty_engine: PenaltyEngine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._loans = loan_repository
        self._gate = gate
        self._settings = settings_service
        self._ledger = ledger_service
        self._penalties = penalty_engine
        self._clock = clock

    def _view(self, record: LoanRecord, principal: Principal) -> Dict[str, Any]:
        return project_loan(record, principal.role)

    def _load_owned(
        self, principal: Optional[Principal], loan_id: str, required_role: UserRole
    ) -> Tuple[LoanRecord, Principal]:
        """Authenticate, load the record, then check role with the owner override."""
        self._gate.authorize(principal, UserRole.USER)
        record = self._loans.get_by_id(loan_id)
        caller = self._gate.authorize(principal, required_role, owner_id=record.user_id, allow_owner=True)
        return record, caller

    def create_loan(self, principal: Optional[Principal], application: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a pending loan record owned by the caller.

        Raises:
            ModelValidationError: If terms are not accepted or no service is named.
        """
        caller = self._gate.authorize(principal, UserRole.USER)
        if not application.get("terms_accepted"):
            raise ModelValidationError("Terms and conditions must be accepted")
        other_service = sanitize_text(application.get("other_service"))
        if not application.get("service_id") and not other_service:
            raise ModelValidationError("Service or custom service description is required")

        now = self._clock()
        store_id = application.get("store_id")
        other_store = application.get("other_store")
        if store_id == "other":
            if not other_store:
                raise ModelValidationError("Other store name, owner email, phone, and address are required")
            store_id = None
            other_store = {key: sanitize_text(str(value)) or "" for key, value in other_store.items()}
        else:
            other_store = None

        record = LoanRecord(
            id=str(uuid4()),
            user_id=caller.identity,
            status=LoanStatus.PENDING,
            service_id=application.get("service_id"),
            other_service=other_service,
            store_id=store_id,
            other_store=other_store,
            amount=application.get("amount"),
            tenure_months=application.get("tenure_months"),
            timeline=sanitize_text(application.get("timeline")),
            purpose=sanitize_text(application.get("purpose")),
            description=sanitize_text(application.get("description")),
            terms_accepted=True,
            terms_accepted_at=application.get("terms_accepted_at") or now,
            owner=OwnerSummary(id=caller.identity, email=caller.email, full_name=caller.full_name),
            created_at=now,
            updated_at=now,
        )
        created = self._loans.create(record)
        return self._view(created, caller)

    def list_loans(self, principal: Optional[Principal], page: int = 1, limit: int = 1000) -> Dict[str, Any]:
        """List loan records; plain users only see their own."""
        caller = self._gate.authorize(principal, UserRole.USER)
        page = max(1, page)
        limit = max(1, limit)
        offset = (page - 1) * limit
        owner_filter = caller.identity if caller.role == UserRole.USER else None

        records = self._loans.list_loans(user_id=owner_filter, offset=offset, limit=limit)
        total = self._loans.count(user_id=owner_filter)
        return {
            "data": [self._view(record, caller) for record in records],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
                "hasNext": offset + limit < total,
                "hasPrev": page > 1,
            },
        }

    def list_user_loans(self, principal: Optional[Principal], user_id: str) -> List[Dict[str, Any]]:
        """List one account's loan records newest first (staff only)."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        records = self._loans.list_loans(user_id=user_id, limit=USER_LOANS_LIMIT)
        return [self._view(record, caller) for record in records]

    def get_loan(self, principal: Optional[Principal], loan_id: str) -> Dict[str, Any]:
        """Return one loan record, refreshing `emi_started` when the first due date passed."""
        record, caller = self._load_owned(principal, loan_id, UserRole.STAFF)

        _, changed = self._settings.sync_emi_started(record, self._clock())
        if changed:
            record = self._loans.update_atomic(
                loan_id, lambda current: self._settings.sync_emi_started(current, self._clock())[0]
            )
        return self._view(record, caller)

    def delete_loan(self, principal: Optional[Principal], loan_id: str) -> Dict[str, Any]:
        """Delete a loan record; allowed for admins and the owner."""
        _, caller = self._load_owned(principal, loan_id, UserRole.ADMIN)
        self._loans.delete(loan_id)
        logger.info("Loan deleted id=%s actor=%s", loan_id, caller.identity)
        return {"success": True, "message": "Query deleted successfully"}

    def update_status(
        self,
        principal: Optional[Principal],
        loan_id: str,
        status: Optional[LoanStatus] = None,
        note: Optional[str] = None,
        internal: bool = False,
    ) -> Dict[str, Any]:
        """Move a loan through its review workflow and optionally attach a note.

        Raises:
            PreconditionError: If the record is already rejected or completed.
        """
        caller = self._gate.authorize(principal, UserRole.STAFF)
        content = sanitize_text(note)

        def _mutate(record: LoanRecord) -> LoanRecord:
            now = self._clock()
            changes: Dict[str, Any] = {}
            if status is not None and status != record.status:
                if record.status.is_terminal:
                    raise PreconditionError(
                        "Query is {0} and can no longer change status".format(record.status.value)
                    )
                changes["status"] = status
                if status == LoanStatus.APPROVED:
                    changes["admin_approved_by"] = caller.identity
                    changes["approved_at"] = now
                elif status == LoanStatus.UNDER_REVIEW:
                    changes["staff_assigned"] = caller.identity
                elif status == LoanStatus.COMPLETED:
                    changes["completed_at"] = now
            if content:
                new_note = NoteModel(
                    id=str(uuid4()),
                    created_by=caller.identity,
                    content=content,
                    internal=internal,
                    created_at=now,
                )
                changes["notes"] = list(record.notes) + [new_note]
            return record.with_updates(**changes) if changes else record

        updated = self._loans.update_atomic(loan_id, _mutate)
        logger.info("Loan status updated id=%s status=%s actor=%s", loan_id, updated.status.value, caller.identity)
        return self._view(updated, caller)

    def mark_service_fee(self, principal: Optional[Principal], loan_id: str, paid: bool) -> Dict[str, Any]:
        """Record service fee payment status."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        updated = self._loans.update_atomic(
            loan_id, lambda record: self._settings.mark_service_fee(record, paid, self._clock())
        )
        return self._view(updated, caller)

    def start_emi(self, principal: Optional[Principal], loan_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate settings and start the repayment schedule."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        validate_emi_settings(payload)
        updated = self._loans.update_atomic(
            loan_id, lambda record: self._settings.start(record, payload, self._clock())
        )
        return self._view(updated, caller)

    def configure_emi(self, principal: Optional[Principal], loan_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Correct schedule parameters without moving the payment calendar."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        validate_emi_settings(payload)
        updated = self._loans.update_atomic(loan_id, lambda record: self._settings.configure(record, payload))
        return self._view(updated, caller)

    def record_payment(self, principal: Optional[Principal], loan_id: str, month: Any, amount: Any) -> Dict[str, Any]:
        """Mark one month's EMI as paid; penalty state is cleared in the same write."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        updated = self._loans.update_atomic(
            loan_id,
            lambda record: self._ledger.record_payment(record, month, amount, caller.identity, self._clock()),
        )
        return self._view(updated, caller)

    def recompute_penalty(self, principal: Optional[Principal], loan_id: str) -> Dict[str, Any]:
        """Accrue the penalty for a record; the owner may trigger this on their own loan."""
        _, caller = self._load_owned(principal, loan_id, UserRole.STAFF)
        updated = self._loans.update_atomic(loan_id, lambda current: self._penalties.accrue(current, self._clock())[0])
        return {"penalty_amount": updated.penalty_amount, "query": self._view(updated, caller)}

    def waive_penalty(self, principal: Optional[Principal], loan_id: str) -> Dict[str, Any]:
        """Waive the active penalty, recording who waived it."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        updated = self._loans.update_atomic(
            loan_id, lambda record: self._penalties.waive(record, caller.identity, self._clock())
        )
        return self._view(updated, caller)

    def emi_status(self, principal: Optional[Principal], loan_id: str) -> Dict[str, Any]:
        """Summarize repayment progress for a loan record."""
        record, _ = self._load_owned(principal, loan_id, UserRole.STAFF)
        record, _ = self._settings.sync_emi_started(record, self._clock())
        summary = emi_completion_status(
            record.principal_amount or record.amount,
            record.emi_percent,
            record.tenure_months,
            record.emi_payments.values(),
            emi_started=record.emi_started,
            completed=record.status == LoanStatus.COMPLETED,
        )
        summary.update(
            {
                "query_id": record.id,
                "penalty_amount": record.penalty_amount,
                "total_amount_due": round(summary["monthly_emi"] + record.penalty_amount, 2),
                "payments_recorded": len(record.emi_payments),
            }
        )
        return summary
