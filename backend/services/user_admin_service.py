"""Account administration: listing, blocking, role changes and deletion."""

from datetime import datetime
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from models.base import utc_now
from models.enums import UserRole
from models.exceptions import ModelValidationError, UnauthenticatedError
from models.repositories import LoanRepository, ProfileRepository
from models.users import Principal
from services.authorization import AuthorizationGate


logger = logging.getLogger(__name__)


class UserAdminService:
    """Staff and admin operations on other accounts, plus the caller's own account view."""

    def __init__(
        self,
        profile_repository: ProfileRepository,
        loan_repository: LoanRepository,
        gate: AuthorizationGate,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._profiles = profile_repository
        self._loans = loan_repository
        self._gate = gate
        self._clock = clock

    def current_account(self, principal: Optional[Principal]) -> Dict[str, Any]:
        """Return the caller's own identity and role.

        Blocked accounts may read this so a client can redirect them.

        Raises:
            UnauthenticatedError: If no principal resolved.
        """
        if principal is None:
            raise UnauthenticatedError()
        return {
            "id": principal.identity,
            "email": principal.email,
            "full_name": principal.full_name,
            "role": principal.role.value,
            "blocked": principal.blocked,
        }

    def list_users(self, principal: Optional[Principal]) -> List[Dict[str, Any]]:
        """List every account newest first with its loan count (staff only)."""
        self._gate.authorize(principal, UserRole.STAFF)
        users = []
        for profile in self._profiles.list_profiles():
            payload = profile.model_dump(mode="json")
            payload["queryCount"] = self._loans.count(user_id=profile.id)
            users.append(payload)
        return users

    def set_blocked(self, principal: Optional[Principal], target_id: str, blocked: bool) -> Dict[str, Any]:
        """Block or unblock an account; nobody may block themselves."""
        caller = self._gate.authorize(principal, UserRole.STAFF)
        self._gate.guard_self_action(caller, target_id, "block")
        now = self._clock()
        profile = self._profiles.update_fields(
            target_id,
            blocked=blocked,
            blocked_at=now if blocked else None,
            blocked_by=caller.identity if blocked else None,
        )
        logger.info("Account block updated target=%s blocked=%s actor=%s", target_id, blocked, caller.identity)
        return profile.model_dump(mode="json")

    def update_profile(
        self,
        principal: Optional[Principal],
        target_id: str,
        full_name: Optional[str] = None,
        role: Union[str, UserRole, None] = None,
    ) -> Dict[str, Any]:
        """Change an account's display name or role (admin only).

        Raises:
            ModelValidationError: If `role` is not a known role name.
        """
        caller = self._gate.authorize(principal, UserRole.ADMIN)
        changes: Dict[str, Any] = {}
        if full_name is not None:
            changes["full_name"] = full_name
        if role is not None:
            parsed = UserRole.parse(role)
            if parsed is None:
                raise ModelValidationError("Invalid role")
            changes["role"] = parsed
        if not changes:
            raise ModelValidationError("Nothing to update")
        profile = self._profiles.update_fields(target_id, **changes)
        logger.info("Account updated target=%s fields=%s actor=%s", target_id, sorted(changes), caller.identity)
        return profile.model_dump(mode="json")

    def delete_user(self, principal: Optional[Principal], target_id: str) -> Dict[str, Any]:
        """Delete an account (admin only); nobody may delete themselves."""
        caller = self._gate.authorize(principal, UserRole.ADMIN)
        self._gate.guard_self_action(caller, target_id, "delete")
        self._profiles.delete(target_id)
        logger.info("Account deleted target=%s actor=%s", target_id, caller.identity)
        return {"success": True, "message": "User deleted successfully"}
