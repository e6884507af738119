"""Resolve bearer credentials into authenticated principals."""

from abc import ABC, abstractmethod
import logging
from typing import Optional

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from models.exceptions import ModelNotFoundError, UnauthenticatedError
from models.repositories import ProfileRepository
from models.users import Principal


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
TOKEN_COOKIE_NAME = "access_token"


def extract_bearer_token(authorization: Optional[str], cookie_token: Optional[str] = None) -> Optional[str]:
    """Return the token from an `Authorization: Bearer` header, else from the cookie."""
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()
        if token:
            return token
    return cookie_token or None


class PrincipalResolver(ABC):
    """Turns a credential into a principal or raises `UnauthenticatedError`."""

    @abstractmethod
    def resolve(self, credential: Optional[str]) -> Principal:
        """Return the principal for `credential`."""


class FirebasePrincipalResolver(PrincipalResolver):
    """Verifies Firebase ID tokens and loads the caller's profile on every request."""

    def __init__(self, profile_repository: ProfileRepository, project_id: Optional[str]) -> None:
        self._profile_repository = profile_repository
        self._project_id = project_id
        self._request = google_requests.Request()

    def resolve(self, credential: Optional[str]) -> Principal:
        if not credential:
            raise UnauthenticatedError("No access token found")
        try:
            claims = id_token.verify_firebase_token(credential, self._request, audience=self._project_id)
        except (ValueError, google_auth_exceptions.GoogleAuthError):
            logger.warning("Rejected invalid or expired token.")
            raise UnauthenticatedError("Invalid or expired token")

        uid = (claims or {}).get("user_id") or (claims or {}).get("sub")
        if not uid:
            raise UnauthenticatedError("Invalid or expired token")
        try:
            profile = self._profile_repository.get_by_id(uid)
        except ModelNotFoundError:
            logger.warning("Profile missing for authenticated uid=%s", uid)
            raise UnauthenticatedError("Profile not found")
        return Principal.from_profile(profile)
