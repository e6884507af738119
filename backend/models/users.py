"""User profile and authenticated principal models."""

from datetime import datetime
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseDocumentModel
from .enums import UserRole


logger = logging.getLogger(__name__)


class ProfileModel(BaseDocumentModel):
    """Represents an account profile with its role and block state."""

    email: str = Field(..., min_length=3)
    full_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = Field(default=UserRole.USER)
    blocked: bool = Field(default=False)
    blocked_at: Optional[datetime] = Field(default=None)
    blocked_by: Optional[str] = Field(default=None)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: object) -> object:
        """Accept role names in any case."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        """Normalize email to lower-case."""
        return value.lower()


class Principal(BaseModel):
    """Caller identity resolved from a verified credential."""

    identity: str = Field(..., min_length=1)
    role: UserRole = Field(default=UserRole.USER)
    blocked: bool = Field(default=False)
    email: Optional[str] = Field(default=None)
    full_name: Optional[str] = Field(default=None)

    @classmethod
    def from_profile(cls, profile: ProfileModel) -> "Principal":
        """Build a principal from a stored profile."""
        return cls(
            identity=profile.id or "",
            role=profile.role,
            blocked=profile.blocked,
            email=profile.email,
            full_name=profile.full_name,
        )
