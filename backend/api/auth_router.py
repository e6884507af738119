"""Current-account endpoint for signed-in clients."""

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends

from api.dependencies import internal_error, to_http_exception
from models.exceptions import ServicingError
from models.users import Principal
from services.user_admin_service import UserAdminService


logger = logging.getLogger(__name__)


def build_auth_router(
    service: UserAdminService,
    current_principal: Callable[..., Optional[Principal]],
) -> APIRouter:
    """Build router exposing the caller's own account."""
    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.get("/user", summary="Current account")
    def current_user(principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        """Return id, email, name, role and block state of the caller."""
        try:
            return service.current_account(principal)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Current user endpoint failed")
            raise internal_error()

    return router
