"""
Profile records and the profile setup form schema.

The form schema is the validation boundary: input that fails here is shown
inline next to the field and never reaches the database.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from backend.identity_access.domain import Role


FULL_NAME_MIN_LENGTH = 2
FULL_NAME_MESSAGE = "Name is required and must be at least 2 characters"


class ProfileForm(BaseModel):
    """Validated profile setup submission."""

    model_config = ConfigDict(extra="ignore")

    full_name: str
    bio: Optional[str] = None

    @field_validator("full_name", mode="before")
    @classmethod
    def _check_full_name(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError(FULL_NAME_MESSAGE)
        trimmed = value.strip()
        if len(trimmed) < FULL_NAME_MIN_LENGTH:
            raise ValueError(FULL_NAME_MESSAGE)
        return trimmed

    @field_validator("bio", mode="before")
    @classmethod
    def _normalize_bio(cls, value: Any) -> Optional[str]:
        # Empty or whitespace-only bios are stored as NULL, never as "".
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Bio must be text")
        trimmed = value.strip()
        return trimmed or None


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into {field: first message}."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("form",)
        name = str(loc[0])
        if name in errors:
            continue
        msg = str(err.get("msg") or "Invalid value")
        # pydantic prefixes messages raised from validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        if err.get("type") == "missing" and name == "full_name":
            msg = FULL_NAME_MESSAGE
        errors[name] = msg
    return errors


class Profile(BaseModel):
    """Row of the `profiles` table."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: Optional[str] = None
    user_id: str
    email: str = ""
    full_name: Optional[str] = None
    bio: Optional[str] = None
    role: Role = Role.STUDENT
    avatar_url: Optional[str] = None
    approved: bool = False
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    completed_classes: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("completed_classes", mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("approved", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def is_complete(self) -> bool:
        return bool((self.full_name or "").strip())

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


__all__ = [
    "FULL_NAME_MESSAGE",
    "FULL_NAME_MIN_LENGTH",
    "Profile",
    "ProfileForm",
    "field_errors",
]
