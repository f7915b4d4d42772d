"""
Per-request session state: who is signed in and what their profile says.

`AuthStateProvider.load()` turns an opaque session record into an
`AuthState`. The profile is always re-read (it changes on setup and
approval); the identity is refreshed from Supabase Auth only while the
cached copy is still unverified, so a click on the verification link is
picked up without signing in again.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import logging

from backend.profiles.errors import ProfileLookupError
from backend.profiles.models import Profile

from .domain import Identity
from .stores import SessionRecord, SessionStore
from .supabase_auth import AuthGatewayError, SupabaseAuthGateway


logger = logging.getLogger("studycore.identity_access")


@dataclass(frozen=True)
class AuthState:
    user: Optional[Identity] = None
    profile: Optional[Profile] = None
    loading: bool = False
    initializing: bool = False

    @property
    def signed_in(self) -> bool:
        return self.user is not None


SIGNED_OUT = AuthState()


class AuthStateProvider:
    def __init__(self, gateway: SupabaseAuthGateway, repo: Any, sessions: SessionStore) -> None:
        self.gateway = gateway
        self.repo = repo
        self.sessions = sessions

    async def load(self, session: Optional[SessionRecord]) -> AuthState:
        if session is None:
            return SIGNED_OUT
        identity = session.identity
        if not identity.email_verified:
            try:
                fresh = await self.gateway.get_identity(session.access_token)
            except AuthGatewayError as exc:
                if exc.code == "session_invalid":
                    self.sessions.delete(session.session_id)
                    return SIGNED_OUT
                # Auth temporarily unavailable: keep the cached identity.
                logger.warning("identity refresh failed: %s", exc.code)
                fresh = identity
            if fresh != identity:
                self.sessions.update_identity(session.session_id, fresh)
            identity = fresh
        return AuthState(user=identity, profile=await self.load_profile(identity.id))

    async def load_profile(self, user_id: str) -> Optional[Profile]:
        try:
            return await self.repo.find_by_user_id(user_id)
        except ProfileLookupError:
            logger.warning("profile lookup failed while loading session user=%s", user_id)
            return None

    async def sign_out(self, session: Optional[SessionRecord]) -> None:
        if session is None:
            return
        await self.gateway.sign_out(session.access_token)
        self.sessions.delete(session.session_id)


__all__ = ["AuthState", "AuthStateProvider", "SIGNED_OUT"]
