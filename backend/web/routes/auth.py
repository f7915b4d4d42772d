"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep sign-in, registration, sign-out, password reset and the
    verification/status pages in a dedicated router. Supabase Auth does the
    work; this module only maps form posts to gateway calls and gateway
    results to pages and redirects.

Notes:
    - Tokens stay server-side in the session store; the browser only holds
      the opaque `studycore_session` cookie.
    - All pages here are public (see `_is_public_path` in main); they work
      with or without a session.
"""

from __future__ import annotations

from typing import Dict
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from backend.identity_access.domain import SELF_SERVICE_ROLES
from backend.identity_access.supabase_auth import (
    INVALID_RESET_LINK,
    RESET_CONFIRM_PATH,
    AuthGatewayError,
    normalize_email,
)
from backend.profiles.models import field_errors

from ..auth_utils import DEBUG_COOKIE_PREFIX, FLASH_COOKIE_NAME, clear_session_cookie, set_session_cookie
from ..components import NewPasswordForm, RegisterForm, ResetPasswordForm, SignInForm
from ..components.pages import AuthStatusPage, ClearDataPage, VerifyEmailPage
from ..config import session_ttl_seconds
from ..context import (
    current_session,
    environment,
    get_services,
    load_auth_state,
    notifier_for,
    render_page,
    require_backend,
)
from ..navigation import redirect_response


auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("studycore.web.auth")

PASSWORD_MIN_LENGTH = 6
REGISTERED_NOTICE = "Registration successful! Please check your email to verify your account."
SIGNED_OUT_NOTICE = "You have been signed out"
PASSWORD_UPDATED_NOTICE = "Password updated successfully!"


class SignUpForm(BaseModel):
    email: str
    password: str
    role: str = "student"

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: object) -> str:
        email = normalize_email(value if isinstance(value, str) else "")
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise ValueError("Please enter a valid email address")
        return email

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: object) -> str:
        if not isinstance(value, str) or len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return value

    @field_validator("role", mode="before")
    @classmethod
    def _check_role(cls, value: object) -> str:
        if value is None or value == "":
            value = "student"
        role = value.strip().lower() if isinstance(value, str) else ""
        if role not in SELF_SERVICE_ROLES:
            raise ValueError("Please choose a valid role")
        return role


def _form_values(form) -> Dict[str, str]:
    return {k: str(v) for k, v in form.items() if isinstance(v, str)}


@auth_router.get("/auth/login")
async def auth_login_page(request: Request, verified: str | None = None):
    """Render the sign-in form; signed-in users go straight to the dashboard."""
    if current_session(request) is not None:
        return redirect_response(request, "/dashboard")
    if verified == "true":
        notifier_for(request).success("Email verified. Please sign in.")
    return render_page(request, "Sign in", SignInForm().render())


@auth_router.post("/auth/login")
async def auth_login_submit(request: Request):
    """
    Sign in with email and password.

    Behavior:
        - Success: creates a server-side session, sets the session cookie and
          redirects to `/dashboard` (the route guard takes it from there).
        - Failure: re-renders the form with a user-facing message (401).
    """
    services = require_backend(request)
    form = await request.form()
    values = _form_values(form)
    email = values.get("email", "")
    password = values.get("password", "")
    if not email.strip() or not password:
        content = SignInForm(values={"email": email}, error="Please enter email and password").render()
        return render_page(request, "Sign in", content, status_code=400)
    try:
        auth = await services.gateway.sign_in(email, password)  # type: ignore[union-attr]
    except AuthGatewayError as exc:
        content = SignInForm(values={"email": email}, error=exc.message).render()
        return render_page(request, "Sign in", content, status_code=401)
    ttl = session_ttl_seconds()
    if auth.expires_in:
        ttl = min(ttl, int(auth.expires_in))
    rec = services.sessions.create(
        identity=auth.identity,
        access_token=auth.access_token,
        refresh_token=auth.refresh_token,
        ttl_seconds=ttl,
    )
    response = redirect_response(request, "/dashboard")
    set_session_cookie(response, rec.session_id, environment=environment(request), max_age=ttl)
    return response


@auth_router.get("/auth/register")
async def auth_register_page(request: Request):
    if current_session(request) is not None:
        return redirect_response(request, "/dashboard")
    return render_page(request, "Register", RegisterForm().render())


@auth_router.post("/auth/register")
async def auth_register_submit(request: Request):
    """
    Create an account with a self-service role (student or tutor).

    Behavior:
        - Invalid input: 400 with inline field errors.
        - Supabase rejection: 400 with the gateway's message.
        - Success: redirect to `/verify-email` with a notice. No session is
          created; the user signs in after verifying.
    """
    services = require_backend(request)
    form = await request.form()
    values = _form_values(form)
    try:
        data = SignUpForm.model_validate(values)
    except ValidationError as exc:
        content = RegisterForm(values=values, errors=field_errors(exc)).render()
        return render_page(request, "Register", content, status_code=400)
    try:
        await services.gateway.sign_up(data.email, data.password, data.role)  # type: ignore[union-attr]
    except AuthGatewayError as exc:
        content = RegisterForm(values=values, error=exc.message).render()
        return render_page(request, "Register", content, status_code=400)
    notifier = notifier_for(request)
    notifier.success(REGISTERED_NOTICE)
    return redirect_response(request, "/verify-email", notifier=notifier)



class PasswordChangeForm(BaseModel):
    password: str
    confirm_password: str

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: object) -> str:
        if not isinstance(value, str) or len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _check_match(cls, value: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and value != password:
            raise ValueError("Passwords don't match")
        return value


@auth_router.get("/auth/reset-password")
async def reset_password_page(request: Request):
    return render_page(request, "Reset password", ResetPasswordForm().render())


@auth_router.post("/auth/reset-password")
async def reset_password_submit(request: Request):
    """
    Send a recovery link.

    Behavior:
        - Missing or malformed email: 400, nothing sent.
        - Supabase rejection (rate limit, outage): 400 with the gateway's message.
        - Otherwise: the same confirmation whether or not an account exists.
    """
    services = require_backend(request)
    form = await request.form()
    email = normalize_email(str(form.get("email") or ""))
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        content = ResetPasswordForm(email=email, error="Please enter a valid email address").render()
        return render_page(request, "Reset password", content, status_code=400)
    try:
        await services.gateway.reset_password(email)  # type: ignore[union-attr]
    except AuthGatewayError as exc:
        content = ResetPasswordForm(email=email, error=exc.message).render()
        return render_page(request, "Reset password", content, status_code=400)
    return render_page(request, "Reset password", ResetPasswordForm(email=email, sent=True).render())


def _back_to_reset(request: Request) -> Response:
    notifier = notifier_for(request)
    notifier.error(INVALID_RESET_LINK)
    return redirect_response(request, "/auth/reset-password", notifier=notifier)


@auth_router.get(RESET_CONFIRM_PATH)
async def reset_password_confirm_page(
    request: Request,
    token_hash: str | None = None,
    link_type: str | None = Query(None, alias="type"),
):
    """
    Landing page of the recovery mail.

    The link carries `token_hash` and `type=recovery`. A valid link signs the
    user in with a fresh session (replacing any current one) and shows the
    new-password form; anything else goes back to the request form.
    """
    services = require_backend(request)
    if token_hash:
        if link_type not in (None, "recovery"):
            return _back_to_reset(request)
        try:
            auth = await services.gateway.verify_recovery(token_hash)  # type: ignore[union-attr]
        except AuthGatewayError:
            return _back_to_reset(request)
        previous = current_session(request)
        if previous is not None:
            services.sessions.delete(previous.session_id)
        ttl = session_ttl_seconds()
        if auth.expires_in:
            ttl = min(ttl, int(auth.expires_in))
        rec = services.sessions.create(
            identity=auth.identity,
            access_token=auth.access_token,
            refresh_token=auth.refresh_token,
            ttl_seconds=ttl,
        )
        request.state.session = rec
        response = render_page(request, "Choose a new password", NewPasswordForm().render())
        set_session_cookie(response, rec.session_id, environment=environment(request), max_age=ttl)
        return response
    if current_session(request) is None:
        return _back_to_reset(request)
    return render_page(request, "Choose a new password", NewPasswordForm().render())


@auth_router.post(RESET_CONFIRM_PATH)
async def reset_password_confirm_submit(request: Request):
    """
    Store the new password for the signed-in (recovering) user.

    Behavior:
        - No session: back to `/auth/reset-password` with a notice.
        - Invalid input: 400 with inline field errors.
        - Supabase rejection: 400 with the gateway's message.
        - Success: redirect to `/dashboard` with a notice.
    """
    services = require_backend(request)
    session = current_session(request)
    if session is None:
        return _back_to_reset(request)
    form = await request.form()
    try:
        data = PasswordChangeForm.model_validate(_form_values(form))
    except ValidationError as exc:
        content = NewPasswordForm(errors=field_errors(exc)).render()
        return render_page(request, "Choose a new password", content, status_code=400)
    try:
        await services.gateway.update_password(  # type: ignore[union-attr]
            session.access_token, session.refresh_token, data.password
        )
    except AuthGatewayError as exc:
        content = NewPasswordForm(error=exc.message).render()
        return render_page(request, "Choose a new password", content, status_code=400)
    logger.info("password updated user=%s", session.user_id)
    notifier = notifier_for(request)
    notifier.success(PASSWORD_UPDATED_NOTICE)
    return redirect_response(request, "/dashboard", notifier=notifier)


async def _logout(request: Request) -> Response:
    services = get_services(request)
    session = current_session(request)
    if session is not None:
        if services.auth_state is not None:
            await services.auth_state.sign_out(session)
        else:
            services.sessions.delete(session.session_id)
        request.state.session = None
    notifier = notifier_for(request)
    notifier.info(SIGNED_OUT_NOTICE)
    response = redirect_response(request, "/auth/login", notifier=notifier)
    clear_session_cookie(response, environment=environment(request))
    return response


@auth_router.post("/auth/logout")
async def auth_logout(request: Request):
    """Revoke the Supabase token, drop the session and clear the cookie."""
    return await _logout(request)


@auth_router.get("/auth/logout")
async def auth_logout_get(request: Request):
    return await _logout(request)


@auth_router.get("/verify-email")
async def verify_email_page(request: Request, verified: str | None = None):
    """Explain the verification step; signed-in, verified users may continue."""
    state = await load_auth_state(request)
    user = state.user
    is_verified = verified == "true" or bool(user and user.email_verified)
    content = VerifyEmailPage(
        email=user.email if user else "",
        verified=is_verified,
        signed_in=user is not None,
    ).render()
    return render_page(request, "Verify email", content)


@auth_router.post("/verify-email")
async def verify_email_resend(request: Request):
    services = require_backend(request)
    state = await load_auth_state(request)
    form = await request.form()
    email = state.user.email if state.user else str(form.get("email") or "")
    notifier = notifier_for(request)
    if not email.strip():
        notifier.error("Please enter your email address")
        return redirect_response(request, "/verify-email", notifier=notifier)
    try:
        await services.gateway.resend_verification(email)  # type: ignore[union-attr]
    except AuthGatewayError as exc:
        notifier.error(exc.message)
    else:
        notifier.success("Verification email sent. Please check your inbox.")
    return redirect_response(request, "/verify-email", notifier=notifier)


@auth_router.get("/auth-status")
async def auth_status_page(request: Request):
    state = await load_auth_state(request)
    session = current_session(request)
    content = AuthStatusPage(
        user=state.user,
        profile=state.profile,
        session_expires_at=session.expires_at if session else None,
    ).render()
    return render_page(request, "Authentication status", content)


@auth_router.get("/clear-data")
async def clear_data_page(request: Request):
    return render_page(request, "Clear session data", ClearDataPage().render(), show_nav=False)


@auth_router.post("/clear-data")
async def clear_data_submit(request: Request):
    """Sign out (best effort) and drop the session, flash and debug cookies."""
    services = get_services(request)
    session = current_session(request)
    if session is not None:
        if services.auth_state is not None:
            await services.auth_state.sign_out(session)
        else:
            services.sessions.delete(session.session_id)
        request.state.session = None
    response = render_page(request, "Clear session data", ClearDataPage(cleared=True).render(), show_nav=False)
    clear_session_cookie(response, environment=environment(request))
    response.delete_cookie(FLASH_COOKIE_NAME, path="/")
    for name in request.cookies:
        if name.startswith(DEBUG_COOKIE_PREFIX):
            response.delete_cookie(name, path="/")
    logger.info("session data cleared")
    return response
