"""
In-memory session store for the web layer.

Why: Keep Supabase tokens and identity details server-side. The browser only
receives an opaque session id in an HttpOnly cookie.

Security: Cookies carry only an opaque session id. Tokens never leave the
server. For multi-instance deployments, replace with a shared store.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple
import secrets
import time

from .domain import Identity, Role


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    user_id: str
    email: str
    email_verified: bool
    role_hint: Optional[Role]
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    flashes: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def identity(self) -> Identity:
        return Identity(
            id=self.user_id,
            email=self.email,
            email_verified=self.email_verified,
            role_hint=self.role_hint,
        )


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(
        self,
        *,
        identity: Identity,
        access_token: str,
        refresh_token: Optional[str] = None,
        ttl_seconds: int = 3600,
    ) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(
            session_id=sid,
            user_id=identity.id,
            email=identity.email,
            email_verified=identity.email_verified,
            role_hint=identity.role_hint,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=_now() + ttl_seconds,
        )
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def update_identity(self, session_id: str, identity: Identity) -> Optional[SessionRecord]:
        """Refresh the cached identity fields (e.g. after email verification)."""
        rec = self.get(session_id)
        if not rec:
            return None
        updated = replace(
            rec,
            email=identity.email,
            email_verified=identity.email_verified,
            role_hint=identity.role_hint,
        )
        self._data[session_id] = updated
        return updated

    def push_flash(self, session_id: str, level: str, message: str) -> None:
        rec = self.get(session_id)
        if rec is not None:
            rec.flashes.append((level, message))

    def pop_flashes(self, session_id: str) -> List[Tuple[str, str]]:
        rec = self.get(session_id)
        if rec is None:
            return []
        items, rec.flashes = rec.flashes, []
        return items

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)
