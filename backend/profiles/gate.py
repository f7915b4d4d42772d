"""
Access gate for the profile setup page and route guards for the app area.

`decide()` is a pure function of the session state. `AccessGate` adds the
side effects (navigation, notices) and makes them idempotent: re-evaluating
with unchanged inputs never navigates or notifies twice.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from backend.identity_access.domain import Identity

from .models import Profile
from .ports import Navigator, Notifier

if TYPE_CHECKING:  # pragma: no cover
    from backend.identity_access.auth_state import AuthState


LOGIN_PATH = "/auth/login"
VERIFY_PATH = "/verify-email"
DASHBOARD_PATH = "/dashboard"
SETUP_PATH = "/setup-profile"
PENDING_PATH = "/pending-approval"

SIGN_IN_NOTICE = "Please sign in to continue"
VERIFY_NOTICE = "Please verify your email first"


class GateDecision(str, Enum):
    AWAIT_LOADING = "await_loading"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_VERIFY = "redirect_verify"
    REDIRECT_DASHBOARD = "redirect_dashboard"
    RENDER_FORM = "render_form"


_TARGETS = {
    GateDecision.REDIRECT_LOGIN: LOGIN_PATH,
    GateDecision.REDIRECT_VERIFY: VERIFY_PATH,
    GateDecision.REDIRECT_DASHBOARD: DASHBOARD_PATH,
}

_NOTICES = {
    GateDecision.REDIRECT_LOGIN: SIGN_IN_NOTICE,
    GateDecision.REDIRECT_VERIFY: VERIFY_NOTICE,
}


def _has_full_name(profile: Optional[Profile]) -> bool:
    return profile is not None and profile.is_complete


def decide(loading: bool, identity: Optional[Identity], profile: Optional[Profile]) -> GateDecision:
    """Map the session state to a gate decision.

    Priority order: loading, missing identity, completed profile,
    unverified email. A completed profile wins over a missing verification.
    """
    if loading:
        return GateDecision.AWAIT_LOADING
    if identity is None:
        return GateDecision.REDIRECT_LOGIN
    if _has_full_name(profile):
        return GateDecision.REDIRECT_DASHBOARD
    if not identity.email_verified:
        return GateDecision.REDIRECT_VERIFY
    return GateDecision.RENDER_FORM


@dataclass(frozen=True)
class GateOutcome:
    decision: GateDecision
    navigated_to: Optional[str] = None
    notified: Optional[str] = None


GateKey = Tuple[GateDecision, Optional[str], bool, bool]


class AccessGate:
    """Stateful wrapper around `decide` that owns the idempotence key."""

    def __init__(self, navigator: Navigator, notifier: Notifier) -> None:
        self._navigator = navigator
        self._notifier = notifier
        self._last_key: Optional[GateKey] = None

    def reset(self) -> None:
        self._last_key = None

    def evaluate(
        self,
        loading: bool,
        identity: Optional[Identity],
        profile: Optional[Profile],
    ) -> GateOutcome:
        decision = decide(loading, identity, profile)
        # Loading is a pass-through state: it neither acts nor forgets.
        if decision is GateDecision.AWAIT_LOADING:
            return GateOutcome(decision)
        if identity is None:
            # Signed out is one state whatever profile is still around.
            key: GateKey = (decision, None, False, False)
        else:
            key = (decision, identity.id, identity.email_verified, _has_full_name(profile))
        if key == self._last_key:
            return GateOutcome(decision)
        self._last_key = key
        notice = _NOTICES.get(decision)
        if notice:
            self._notifier.error(notice)
        target = _TARGETS.get(decision)
        if target:
            self._navigator.navigate(target)
        return GateOutcome(decision, navigated_to=target, notified=notice)


def guard_protected(state: "AuthState") -> Optional[str]:
    """Return the redirect target for an app-area page, or None to render.

    While `state.loading` is set the caller renders a placeholder; None is
    returned because no redirect is due yet.
    """
    if state.loading:
        return None
    if state.user is None:
        return LOGIN_PATH
    if not state.user.email_verified:
        return VERIFY_PATH
    profile = state.profile
    if profile is None or not profile.is_complete:
        return SETUP_PATH
    if not profile.is_admin and not profile.approved:
        return PENDING_PATH
    return None


def guard_admin(state: "AuthState") -> Optional[str]:
    if state.loading:
        return None
    if state.user is None:
        return LOGIN_PATH
    if state.profile is None or not state.profile.is_admin:
        return DASHBOARD_PATH
    return None


__all__ = [
    "AccessGate",
    "DASHBOARD_PATH",
    "GateDecision",
    "GateOutcome",
    "LOGIN_PATH",
    "PENDING_PATH",
    "SETUP_PATH",
    "SIGN_IN_NOTICE",
    "VERIFY_NOTICE",
    "VERIFY_PATH",
    "decide",
    "guard_admin",
    "guard_protected",
]
