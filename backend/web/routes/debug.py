"""
Debug settings, test-data seeding and wipe (admin only).

Flags are persisted to the JSON flag file and applied to the running app
immediately, except `use_test_database`, which selects the data client at
startup. The wipe is available only where `ALLOW_DATA_WIPE=true` and the
environment is not prod-like. Seeding follows the `enable_test_data` flag,
also outside prod-like environments only.
"""
from __future__ import annotations

from dataclasses import asdict
import logging

from fastapi import APIRouter, Request

from backend.maintenance.data_wipe import DataWipeError
from backend.maintenance.debug_flags import DebugConfig
from backend.maintenance.test_data import TestDataError
from backend.profiles.errors import ProfileLookupError
from backend.profiles.gate import guard_admin

from ..components.pages import DebugPage
from ..config import data_wipe_allowed
from ..context import (
    active_seeder,
    get_debug_config,
    get_services,
    load_auth_state,
    notifier_for,
    render_page,
    require_backend,
)
from ..navigation import redirect_response


debug_router = APIRouter(tags=["Debug"])
logger = logging.getLogger("studycore.web")

DEBUG_PATH = "/debug"


def _wipe_enabled(request: Request) -> bool:
    return data_wipe_allowed() and get_services(request).wiper is not None


def _debug_page(request: Request, *, status_code: int = 200, result: str | None = None):
    content = DebugPage(
        flags=asdict(get_debug_config(request)),
        wipe_enabled=_wipe_enabled(request),
        seed_enabled=active_seeder(request) is not None,
        result=result,
    ).render()
    return render_page(request, "Debug", content, status_code=status_code)


def _apply(request: Request, config: DebugConfig) -> None:
    request.app.state.debug_config = config
    get_services(request).apply_debug_config(config)


@debug_router.get(DEBUG_PATH)
async def debug_page(request: Request):
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    return _debug_page(request)


@debug_router.post(DEBUG_PATH + "/flags")
async def debug_set_flag(request: Request):
    """Set one flag. Unknown flag names answer 400 and change nothing."""
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    form = await request.form()
    name = str(form.get("flag") or "")
    value = str(form.get("value") or "").strip().lower() == "true"
    try:
        config = get_debug_config(request).with_flag(name, value)
    except ValueError:
        notifier_for(request).error("Unknown debug flag")
        return _debug_page(request, status_code=400)
    get_services(request).flag_store.write(config.to_storage())
    _apply(request, config)
    logger.info("debug flag %s=%s", name, value)
    notifier = notifier_for(request)
    notifier.success(f"{name} {'enabled' if value else 'disabled'}")
    return redirect_response(request, DEBUG_PATH, notifier=notifier)


@debug_router.post(DEBUG_PATH + "/reset")
async def debug_reset(request: Request):
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    get_services(request).flag_store.clear()
    _apply(request, DebugConfig.reset())
    logger.info("debug flags reset to defaults")
    notifier = notifier_for(request)
    notifier.success("Debug settings reset to defaults")
    return redirect_response(request, DEBUG_PATH, notifier=notifier)


@debug_router.post(DEBUG_PATH + "/wipe")
async def debug_wipe(request: Request):
    """
    Delete all class-related test data.

    Responses:
        - 403: wipe not allowed in this installation.
        - 400: missing confirmation; nothing deleted.
        - 502: a table failed; earlier tables stay wiped.
        - 200: all tables wiped.
    """
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    if not _wipe_enabled(request):
        return _debug_page(request, status_code=403, result="Data wipe is not allowed here")
    form = await request.form()
    if str(form.get("confirm") or "") != "yes":
        return _debug_page(request, status_code=400, result="Please confirm the deletion")
    wiper = get_services(request).wiper
    assert wiper is not None
    try:
        await wiper.wipe_all()
    except DataWipeError as exc:
        return _debug_page(
            request,
            status_code=502,
            result=f"Failed to delete test data (stopped at table {exc.table})",
        )
    logger.warning("test data wiped by user=%s", state.user.id if state.user else "-")
    return _debug_page(request, result="Successfully deleted all test data")


_SKIPPED = {
    "already_has_classes": "The tutor already has classes; nothing created",
    "already_enrolled": "The student is already enrolled; nothing created",
    "unsupported_role": "Test data is only created for students and tutors",
}


@debug_router.post(DEBUG_PATH + "/seed")
async def debug_seed(request: Request):
    """
    Create sample classes or enrollments for one user.

    Responses:
        - 403: `enable_test_data` is off (or the install is prod-like).
        - 400: no user id given.
        - 404: the user has no profile.
        - 502: the profile lookup or an insert failed.
        - 200: data created, or the user already had some.
    """
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    seeder = active_seeder(request)
    if seeder is None:
        return _debug_page(request, status_code=403, result="Test data creation is turned off")
    form = await request.form()
    user_id = str(form.get("user_id") or "").strip()
    if not user_id:
        return _debug_page(request, status_code=400, result="Please enter a user id")
    try:
        profile = await require_backend(request).repo.find_by_user_id(user_id)  # type: ignore[union-attr]
    except ProfileLookupError:
        return _debug_page(request, status_code=502, result="Could not load the user's profile")
    if profile is None:
        return _debug_page(request, status_code=404, result="No profile found for that user")
    try:
        outcome = await seeder.seed_for(user_id, profile.role.value)
    except TestDataError as exc:
        return _debug_page(
            request,
            status_code=502,
            result=f"Failed to create test data (stopped at table {exc.table})",
        )
    if not outcome.seeded:
        return _debug_page(request, result=_SKIPPED.get(outcome.reason or "", "Nothing created"))
    logger.info("test data created for user=%s by admin=%s", user_id, state.user.id if state.user else "-")
    summary = ", ".join(f"{count} {table}" for table, count in outcome.created.items())
    return _debug_page(request, result=f"Created test data: {summary}")
