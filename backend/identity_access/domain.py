"""
Identity domain constants and simple helpers.

Why:
- Centralize allowed roles to avoid drift between the auth gateway, the
  profile service and the web layer.
- Keep the authenticated subject read-only: the auth collaborator produces an
  `Identity`, everything else only consumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Roles known to StudyCore."""

    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"


# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in Role)
# Roles a user may pick during self-service registration.
SELF_SERVICE_ROLES = frozenset({Role.STUDENT.value, Role.TUTOR.value})


def parse_role(value: object) -> Optional[Role]:
    """Return the Role for a raw value or None when unknown/absent."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class Identity:
    """Authenticated subject as reported by Supabase Auth."""

    id: str
    email: str
    email_verified: bool = False
    role_hint: Optional[Role] = None


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def identity_from_user(user: Any) -> Identity:
    """Map a Supabase user object (or plain dict) to an Identity.

    Behavior:
        - `email_verified` is derived from `email_confirmed_at` being set.
        - `role_hint` comes from `user_metadata.role` and is ignored when it
          is not one of the allowed roles.
    """
    user_id = _get(user, "id")
    if not user_id:
        raise ValueError("user_without_id")
    metadata = _get(user, "user_metadata") or {}
    role_raw = metadata.get("role") if isinstance(metadata, dict) else None
    return Identity(
        id=str(user_id),
        email=str(_get(user, "email") or ""),
        email_verified=bool(_get(user, "email_confirmed_at")),
        role_hint=parse_role(role_raw),
    )


__all__ = [
    "ALLOWED_ROLES",
    "SELF_SERVICE_ROLES",
    "Identity",
    "Role",
    "identity_from_user",
    "parse_role",
]
