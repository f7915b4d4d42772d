"""
Profile setup, approval waiting room and dashboard routes.

`/setup-profile` is gated by `AccessGate` rather than by the session
middleware, so a signed-out visitor gets the gate's own notice. The other
pages use the route guard (login -> verify -> setup -> pending approval).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from backend.maintenance.test_data import TestDataError
from backend.profiles.gate import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    SIGN_IN_NOTICE,
    VERIFY_NOTICE,
    VERIFY_PATH,
    AccessGate,
    GateDecision,
    guard_protected,
)
from backend.profiles.models import Profile, ProfileForm, field_errors
from backend.profiles.setup import SubmitStatus

from ..components import ProfileSetupForm
from ..components.pages import DashboardPage, PendingApprovalPage
from ..context import active_seeder, load_auth_state, notifier_for, render_page, require_backend
from ..navigation import WebNavigator, redirect_response


profile_router = APIRouter(tags=["Profile"])
logger = logging.getLogger("studycore.web")

IN_FLIGHT_NOTICE = "Your profile is already being saved"
TEST_DATA_NOTICE = "Created test data for your account"
TEST_DATA_FAILED_NOTICE = "Failed to create test data"


def _saved_content() -> str:
    return (
        '<div class="page-header"><h1>Profile saved</h1></div>'
        '<section class="card"><p class="card-text">Taking you to your dashboard.</p></section>'
    )


@profile_router.get("/setup-profile")
async def setup_profile_page(request: Request):
    """
    Render the profile form or redirect, as decided by the access gate.

    Behavior:
        - No identity: redirect to `/auth/login` with "Please sign in to continue".
        - Completed profile: redirect to `/dashboard`.
        - Unverified email: redirect to `/verify-email` with a notice.
        - Otherwise: a fresh, editable form prefilled from the profile row.
    """
    state = await load_auth_state(request)
    navigator = WebNavigator()
    notifier = notifier_for(request)
    outcome = AccessGate(navigator, notifier).evaluate(state.loading, state.user, state.profile)
    if navigator.requested:
        return redirect_response(request, navigator.target, notifier=notifier)  # type: ignore[arg-type]
    if outcome.decision is GateDecision.AWAIT_LOADING:
        return render_page(request, "Set up your profile", '<p class="loading">Loading...</p>')

    services = require_backend(request)
    assert state.user is not None
    machine = services.setup.open_form(state.user.id)  # type: ignore[union-attr]
    values = {}
    if state.profile is not None:
        values = {"full_name": state.profile.full_name or "", "bio": state.profile.bio or ""}
    content = ProfileSetupForm(
        email=state.user.email,
        values=values,
        submitting=not machine.editable,
    ).render()
    return render_page(request, "Set up your profile", content)


@profile_router.post("/setup-profile")
async def setup_profile_submit(request: Request):
    """
    Save the profile (update when a row exists, insert otherwise).

    Responses:
        - 400: validation failed; inline field errors, nothing written.
        - 409: a save for this user is already running; nothing written.
        - 502: the database rejected the lookup or write; form editable again.
        - 200: saved; success notice and a delayed redirect to the dashboard.
    """
    state = await load_auth_state(request)
    notifier = notifier_for(request)
    identity = state.user
    if identity is None:
        notifier.error(SIGN_IN_NOTICE)
        return redirect_response(request, LOGIN_PATH, notifier=notifier)
    # A completed profile may be edited without re-checking verification.
    profile_complete = state.profile is not None and state.profile.is_complete
    if not identity.email_verified and not profile_complete:
        notifier.error(VERIFY_NOTICE)
        return redirect_response(request, VERIFY_PATH, notifier=notifier)

    services = require_backend(request)
    form = await request.form()
    values = {"full_name": str(form.get("full_name") or ""), "bio": str(form.get("bio") or "")}
    try:
        data = ProfileForm.model_validate({"full_name": form.get("full_name"), "bio": form.get("bio")})
    except ValidationError as exc:
        content = ProfileSetupForm(email=identity.email, values=values, errors=field_errors(exc)).render()
        return render_page(request, "Set up your profile", content, status_code=400)

    navigator = WebNavigator()
    outcome = await services.setup.submit(  # type: ignore[union-attr]
        identity, data, navigator=navigator, notifier=notifier
    )

    if outcome.status is SubmitStatus.IGNORED:
        notifier.info(IN_FLIGHT_NOTICE)
        content = ProfileSetupForm(email=identity.email, values=values, submitting=True).render()
        return render_page(request, "Set up your profile", content, status_code=409)
    if outcome.status is SubmitStatus.FAILURE:
        content = ProfileSetupForm(email=identity.email, values=values).render()
        return render_page(request, "Set up your profile", content, status_code=502)
    refresh = (navigator.target or DASHBOARD_PATH, navigator.delay)
    return render_page(request, "Profile saved", _saved_content(), refresh=refresh)


@profile_router.get("/pending-approval")
async def pending_approval_page(request: Request):
    state = await load_auth_state(request)
    target = guard_protected(state)
    if target is not None and target != "/pending-approval":
        return redirect_response(request, target)
    if target is None:
        # Approved users and admins have nothing to wait for.
        return redirect_response(request, "/dashboard")
    return render_page(request, "Pending approval", PendingApprovalPage(state.profile).render())


@profile_router.get("/dashboard")
async def dashboard_page(request: Request):
    """
    Role dashboard behind the route guard.

    With `enable_test_data` on, a tutor without classes or a student without
    enrollments gets sample data on this visit. A failure is reported and the
    page still renders.
    """
    state = await load_auth_state(request)
    target = guard_protected(state)
    if target is not None:
        return redirect_response(request, target)
    assert state.profile is not None
    pending_count = None
    if state.profile.is_admin:
        services = require_backend(request)
        pending_count = await services.approvals.pending_count()  # type: ignore[union-attr]
    else:
        await _seed_test_data(request, state.profile)
    content = DashboardPage(state.profile, pending_count=pending_count).render()
    return render_page(request, "Dashboard", content, pending_count=pending_count)


async def _seed_test_data(request: Request, profile: Profile) -> None:
    seeder = active_seeder(request)
    if seeder is None:
        return
    try:
        outcome = await seeder.seed_for(profile.user_id, profile.role.value)
    except TestDataError as exc:
        logger.warning("dashboard test data failed at %s user=%s", exc.table, profile.user_id)
        notifier_for(request).error(TEST_DATA_FAILED_NOTICE)
        return
    if outcome.seeded:
        notifier_for(request).success(TEST_DATA_NOTICE)


@profile_router.get("/")
async def home(request: Request):
    return redirect_response(request, "/dashboard")
