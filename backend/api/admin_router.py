"""Account administration router for staff and admins."""

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import internal_error, to_http_exception
from models.exceptions import ServicingError
from models.users import Principal
from services.loan_service import LoanServicingService
from services.user_admin_service import UserAdminService


logger = logging.getLogger(__name__)


class BlockUserRequest(BaseModel):
    """Request payload for blocking or unblocking an account."""

    blocked: bool = Field(...)


class UpdateUserRequest(BaseModel):
    """Request payload for admin profile edits."""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[str] = Field(default=None)


def build_admin_router(
    service: UserAdminService,
    loan_service: LoanServicingService,
    current_principal: Callable[..., Optional[Principal]],
) -> APIRouter:
    """Build router for account administration endpoints."""
    router = APIRouter(prefix="/admin/users", tags=["admin"])

    @router.get("", summary="List accounts with loan counts")
    def list_users(principal: Optional[Principal] = Depends(current_principal)) -> List[Dict[str, Any]]:
        try:
            return service.list_users(principal)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("List users endpoint failed")
            raise internal_error()

    @router.get("/{user_id}/queries", summary="List one account's loans")
    def list_user_loans(
        user_id: str,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> List[Dict[str, Any]]:
        try:
            return loan_service.list_user_loans(principal, user_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("List user loans endpoint failed user_id=%s", user_id)
            raise internal_error()

    @router.patch("/{user_id}/block", summary="Block or unblock an account")
    def block_user(
        user_id: str,
        payload: BlockUserRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        try:
            return service.set_blocked(principal, user_id, payload.blocked)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Block user endpoint failed user_id=%s", user_id)
            raise internal_error()

    @router.patch("/{user_id}", summary="Update account name or role")
    def update_user(
        user_id: str,
        payload: UpdateUserRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        try:
            return service.update_profile(principal, user_id, full_name=payload.full_name, role=payload.role)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Update user endpoint failed user_id=%s", user_id)
            raise internal_error()

    @router.delete("/{user_id}", summary="Delete an account")
    def delete_user(user_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        try:
            return service.delete_user(principal, user_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Delete user endpoint failed user_id=%s", user_id)
            raise internal_error()

    return router
