"""
Supabase Auth gateway (authentication collaborator).

Why:
    Keep all calls to Supabase Auth behind one small adapter so that routes
    and services only ever see `Identity` values and `AuthGatewayError`.

Security:
    - A fresh client is created for every call. Supabase clients keep the
      signed-in session in memory; sharing one across requests would leak one
      user's session into another user's request.
    - Passwords and tokens are never logged. Failures are logged with the
      exception class name only.

The client is duck-typed (`supabase.AsyncClient`): it must expose
`client.auth.sign_in_with_password`, `sign_up`, `resend`, `get_user`,
`reset_password_for_email`, `verify_otp`, `set_session`, `update_user` and
`client.auth.admin.sign_out`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
import logging

from .domain import Identity, SELF_SERVICE_ROLES, identity_from_user


logger = logging.getLogger("studycore.identity_access")

ClientFactory = Callable[[], Awaitable[Any]]

RESET_CONFIRM_PATH = "/auth/reset-password/confirm"
INVALID_RESET_LINK = "Invalid or expired reset link"


class AuthGatewayError(RuntimeError):
    """Raised when Supabase Auth rejects a request.

    `message` is safe to show to the user.
    """

    def __init__(self, message: str, *, code: str = "auth_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class AuthSession:
    identity: Identity
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _friendly_message(exc: Exception, fallback: str) -> str:
    raw = str(exc) or ""
    low = raw.lower()
    if "invalid login credentials" in low:
        return "Invalid email or password"
    if "email not confirmed" in low:
        return "Please verify your email first"
    if "already registered" in low:
        return "This email address is already registered"
    if "should be different" in low:
        return "New password must be different from the old one"
    if "rate limit" in low:
        return "Too many attempts. Please try again later"
    return fallback


class SupabaseAuthGateway:
    """Thin async adapter over Supabase Auth."""

    def __init__(self, client_factory: ClientFactory, *, email_redirect_base: str = "", log_events: bool = True) -> None:
        self._client_factory = client_factory
        self._redirect_base = (email_redirect_base or "").rstrip("/")
        self._event_level = logging.INFO if log_events else logging.DEBUG

    def set_log_events(self, log_events: bool) -> None:
        self._event_level = logging.INFO if log_events else logging.DEBUG

    def _redirect_to(self, path: str) -> Optional[str]:
        return f"{self._redirect_base}{path}" if self._redirect_base else None

    async def sign_in(self, email: str, password: str) -> AuthSession:
        client = await self._client_factory()
        try:
            res = await client.auth.sign_in_with_password({"email": normalize_email(email), "password": password})
        except Exception as exc:
            logger.warning("sign_in failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(_friendly_message(exc, "Sign in failed"), code="sign_in_failed") from exc
        user = getattr(res, "user", None)
        session = getattr(res, "session", None)
        if not user or not session:
            raise AuthGatewayError("Sign in failed", code="sign_in_failed")
        identity = identity_from_user(user)
        logger.log(self._event_level, "auth event: signed_in user=%s", identity.id)
        return AuthSession(
            identity=identity,
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", None),
            expires_in=getattr(session, "expires_in", None),
        )

    async def sign_up(self, email: str, password: str, role: str) -> Identity:
        """Register a new account; the role is stored as user metadata.

        Email verification is required before a profile can be set up, so no
        session is returned here even when Supabase issues one.
        """
        if role not in SELF_SERVICE_ROLES:
            raise AuthGatewayError("Please choose a valid role", code="invalid_role")
        options: dict[str, Any] = {"data": {"role": role}}
        redirect_to = self._redirect_to("/auth/login?verified=true")
        if redirect_to:
            options["email_redirect_to"] = redirect_to
        client = await self._client_factory()
        try:
            res = await client.auth.sign_up({"email": normalize_email(email), "password": password, "options": options})
        except Exception as exc:
            logger.warning("sign_up failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(_friendly_message(exc, "Registration failed"), code="sign_up_failed") from exc
        user = getattr(res, "user", None)
        if not user:
            raise AuthGatewayError("Registration failed", code="sign_up_failed")
        identity = identity_from_user(user)
        logger.log(self._event_level, "auth event: signed_up user=%s role=%s", identity.id, role)
        return identity

    async def resend_verification(self, email: str) -> None:
        payload: dict[str, Any] = {"type": "signup", "email": normalize_email(email)}
        redirect_to = self._redirect_to("/verify-email?verified=true")
        if redirect_to:
            payload["options"] = {"email_redirect_to": redirect_to}
        client = await self._client_factory()
        try:
            await client.auth.resend(payload)
        except Exception as exc:
            logger.warning("resend_verification failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(_friendly_message(exc, "Could not resend verification email"), code="resend_failed") from exc

    async def reset_password(self, email: str) -> None:
        """Ask Supabase to mail a recovery link.

        Supabase answers the same way whether or not the address belongs to
        an account, so callers learn nothing about registered emails.
        """
        options: dict[str, Any] = {}
        redirect_to = self._redirect_to(RESET_CONFIRM_PATH)
        if redirect_to:
            options["redirect_to"] = redirect_to
        client = await self._client_factory()
        try:
            await client.auth.reset_password_for_email(normalize_email(email), options)
        except Exception as exc:
            logger.warning("reset_password failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(_friendly_message(exc, "Failed to send reset link"), code="reset_failed") from exc
        logger.log(self._event_level, "auth event: password_reset_requested")

    async def verify_recovery(self, token_hash: str) -> AuthSession:
        """Exchange the `token_hash` of a recovery link for a session."""
        client = await self._client_factory()
        try:
            res = await client.auth.verify_otp({"token_hash": token_hash, "type": "recovery"})
        except Exception as exc:
            logger.warning("verify_recovery failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(INVALID_RESET_LINK, code="recovery_invalid") from exc
        user = getattr(res, "user", None)
        session = getattr(res, "session", None)
        if not user or not session:
            raise AuthGatewayError(INVALID_RESET_LINK, code="recovery_invalid")
        identity = identity_from_user(user)
        logger.log(self._event_level, "auth event: recovery_verified user=%s", identity.id)
        return AuthSession(
            identity=identity,
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", None),
            expires_in=getattr(session, "expires_in", None),
        )

    async def update_password(self, access_token: str, refresh_token: Optional[str], password: str) -> None:
        client = await self._client_factory()
        try:
            await client.auth.set_session(access_token, refresh_token or "")
            await client.auth.update_user({"password": password})
        except Exception as exc:
            logger.warning("update_password failed: %s", exc.__class__.__name__)
            raise AuthGatewayError(
                _friendly_message(exc, "Failed to update password"), code="password_update_failed"
            ) from exc
        logger.log(self._event_level, "auth event: password_updated")

    async def get_identity(self, access_token: str) -> Identity:
        """Fetch the current user for a token (fresh verification status)."""
        client = await self._client_factory()
        try:
            res = await client.auth.get_user(access_token)
        except Exception as exc:
            logger.warning("get_user failed: %s", exc.__class__.__name__)
            # Rejected tokens carry an HTTP status; transport failures do not.
            if getattr(exc, "status", None) in (400, 401, 403, 404):
                raise AuthGatewayError("Session expired. Please sign in again", code="session_invalid") from exc
            raise AuthGatewayError("Authentication is temporarily unavailable", code="auth_unavailable") from exc
        user = getattr(res, "user", None) if res is not None else None
        if not user:
            raise AuthGatewayError("Session expired. Please sign in again", code="session_invalid")
        return identity_from_user(user)

    async def sign_out(self, access_token: str) -> None:
        """Revoke the token server-side; never raises (logout must succeed)."""
        client = await self._client_factory()
        try:
            await client.auth.admin.sign_out(access_token)
            logger.log(self._event_level, "auth event: signed_out")
        except Exception as exc:
            logger.warning("sign_out failed: %s", exc.__class__.__name__)


__all__ = [
    "AuthGatewayError",
    "AuthSession",
    "INVALID_RESET_LINK",
    "RESET_CONFIRM_PATH",
    "SupabaseAuthGateway",
    "normalize_email",
]
