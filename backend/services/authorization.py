"""Role and ownership checks, self-action guards, and role-filtered loan projections."""

import logging
from typing import Any, Dict, Optional, Union

from models.enums import UserRole
from models.exceptions import BlockedError, ForbiddenError, SelfActionError, UnauthenticatedError
from models.loans import LoanRecord
from models.users import Principal


logger = logging.getLogger(__name__)

LOAN_USER_FIELDS = (
    "id",
    "reference_id",
    "user_id",
    "service_id",
    "store_id",
    "other_store",
    "amount",
    "timeline",
    "purpose",
    "description",
    "status",
    "service_fee_paid",
    "service_fee_paid_at",
    "emi_started",
    "emi_started_at",
    "emi_date",
    "emi_percent",
    "emi_payments",
    "principal_amount",
    "penalty_amount",
    "penalty_started_at",
    "penalty_waived",
    "tenure_months",
    "terms_accepted",
    "terms_accepted_at",
    "created_at",
    "updated_at",
    "approved_at",
    "completed_at",
)
SERVICE_USER_FIELDS = ("id", "name", "active", "base_fee", "created_at", "description")
STORE_USER_FIELDS = (
    "id",
    "name",
    "active",
    "address",
    "verified",
    "created_at",
    "owner_name",
    "owner_email",
    "owner_phone",
)
OWNER_USER_FIELDS = ("id", "email", "full_name")


def _pick(payload: Optional[Dict[str, Any]], fields: tuple) -> Optional[Dict[str, Any]]:
    if not payload:
        return None
    return {name: payload.get(name) for name in fields}


def project_loan(record: Union[LoanRecord, Dict[str, Any]], role: UserRole) -> Dict[str, Any]:
    """Return the loan view allowed for `role`.

    Staff and admin see the full record. Plain users get the allow-listed
    fields, trimmed service/store/owner summaries and non-internal notes only.
    """
    payload = record.model_dump(mode="json") if isinstance(record, LoanRecord) else dict(record)
    if role != UserRole.USER:
        return payload

    safe = {name: payload.get(name) for name in LOAN_USER_FIELDS}
    safe["service"] = _pick(payload.get("service"), SERVICE_USER_FIELDS)
    safe["store"] = _pick(payload.get("store"), STORE_USER_FIELDS)
    safe["owner"] = _pick(payload.get("owner"), OWNER_USER_FIELDS)
    safe["notes"] = [note for note in payload.get("notes") or [] if not note.get("internal")]
    other_service = payload.get("other_service")
    if isinstance(other_service, str) and other_service.strip():
        safe["other_service"] = other_service
    return safe


class AuthorizationGate:
    """Checks principals against a required role with an optional ownership override."""

    def authorize(
        self,
        principal: Optional[Principal],
        required_role: UserRole,
        owner_id: Optional[str] = None,
        allow_owner: bool = False,
    ) -> Principal:
        """Return the principal when allowed, otherwise raise.

        Raises:
            UnauthenticatedError: If no principal resolved.
            BlockedError: If the principal's account is blocked.
            ForbiddenError: If role is insufficient and no ownership override applies.
        """
        if principal is None:
            raise UnauthenticatedError()
        if principal.blocked:
            logger.warning("Blocked principal rejected identity=%s", principal.identity)
            raise BlockedError()
        if principal.role.subsumes(required_role):
            return principal
        if allow_owner and owner_id is not None and owner_id == principal.identity:
            return principal

        logger.warning(
            "Forbidden identity=%s role=%s required=%s owner_override=%s",
            principal.identity,
            principal.role.value,
            required_role.value,
            allow_owner,
        )
        if allow_owner:
            raise ForbiddenError()
        raise ForbiddenError("Forbidden - {0} access required".format(required_role.value.capitalize()))

    def guard_self_action(self, principal: Principal, target_id: str, action: str) -> None:
        """Reject actions an account may not take against itself.

        Raises:
            SelfActionError: If `target_id` is the principal's own identity.
        """
        if target_id == principal.identity:
            logger.warning("Self %s rejected identity=%s", action, principal.identity)
            raise SelfActionError("Cannot {0} your own account".format(action))
