"""Request-scoped dependencies and error translation shared by routers."""

import logging
from typing import Callable, Optional

from fastapi import Cookie, Header, HTTPException, status

from models.exceptions import ServicingError
from models.users import Principal
from services.principal_resolver import PrincipalResolver, TOKEN_COOKIE_NAME, extract_bearer_token


logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = {"kind": "internal", "message": "Internal server error"}


def to_http_exception(exc: ServicingError) -> HTTPException:
    """Map a domain error onto its HTTP status and JSON detail payload."""
    return HTTPException(status_code=exc.status_code, detail=exc.to_payload())


def internal_error() -> HTTPException:
    """Return the opaque 500 raised for unexpected failures."""
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_DETAIL)


def build_principal_dependency(resolver: PrincipalResolver) -> Callable[..., Optional[Principal]]:
    """Build a dependency that resolves the caller from header or cookie.

    A request without any credential resolves to `None`; the authorization
    gate then rejects it with 401 for every protected operation.
    """

    def current_principal(
        authorization: Optional[str] = Header(default=None),
        access_token: Optional[str] = Cookie(default=None, alias=TOKEN_COOKIE_NAME),
    ) -> Optional[Principal]:
        token = extract_bearer_token(authorization, access_token)
        if token is None:
            return None
        try:
            return resolver.resolve(token)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Principal resolution failed.")
            raise internal_error()

    return current_principal
