"""
Admin approval queue routes.

Permissions:
    Admin profile required. Non-admins are redirected to `/dashboard`,
    signed-out visitors to `/auth/login`.

Security:
    Approve/reject run the database functions with the admin's own access
    token; the functions re-check the admin role server-side.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from backend.profiles.errors import ProfileLookupError
from backend.profiles.gate import guard_admin

from ..components.pages import ApprovalsPage
from ..context import current_session, load_auth_state, notifier_for, render_page, require_backend
from ..navigation import redirect_response


admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("studycore.web")

APPROVALS_PATH = "/admin/approvals"

_ERROR_MESSAGES = {
    "approve_failed": "Failed to approve user",
    "reject_failed": "Failed to reject user",
    "user_not_found": "User not found or already processed",
}


@admin_router.get(APPROVALS_PATH)
async def approvals_page(request: Request):
    """List pending student/tutor profiles and approvals of the last 30 days."""
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    services = require_backend(request)
    approvals = services.approvals
    assert approvals is not None
    try:
        pending = await approvals.pending()
        recent = await approvals.recent()
    except ProfileLookupError:
        content = ApprovalsPage(pending=[], recent=[], error="Could not load approvals").render()
        return render_page(request, "Approvals", content, status_code=502)
    content = ApprovalsPage(pending=pending, recent=recent).render()
    return render_page(request, "Approvals", content, pending_count=len(pending))


async def _decide(request: Request, user_id: str, op: str):
    state = await load_auth_state(request)
    target = guard_admin(state)
    if target is not None:
        return redirect_response(request, target)
    services = require_backend(request)
    session = current_session(request)
    assert services.approvals is not None and session is not None
    if op == "approve":
        result = await services.approvals.approve_user(session.access_token, user_id)
    else:
        result = await services.approvals.reject_user(session.access_token, user_id)
    notifier = notifier_for(request)
    if result.success:
        notifier.success("User approved" if op == "approve" else "User rejected")
    else:
        logger.warning("%s failed user=%s: %s", op, user_id, result.error)
        notifier.error(_ERROR_MESSAGES.get(result.error or "", "Action failed"))
    return redirect_response(request, APPROVALS_PATH, notifier=notifier)


@admin_router.post(APPROVALS_PATH + "/{user_id}/approve")
async def approve_user(request: Request, user_id: str):
    return await _decide(request, user_id, "approve")


@admin_router.post(APPROVALS_PATH + "/{user_id}/reject")
async def reject_user(request: Request, user_id: str):
    return await _decide(request, user_id, "reject")
