"""
Per-request helpers shared by the routers.

Routers never import `main`; everything they need hangs off `request.app.state`
(settings, services, debug config) or `request.state` (session, auth state).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, Request
from fastapi.responses import HTMLResponse

from backend.identity_access.auth_state import SIGNED_OUT, AuthState
from backend.identity_access.stores import SessionRecord
from backend.maintenance.debug_flags import DebugConfig
from backend.maintenance.test_data import TestDataSeeder

from .auth_utils import FLASH_COOKIE_NAME
from .components import Layout
from .config import is_prod_like
from .navigation import FlashNotifier, is_htmx, read_stashed_flashes
from .wiring import Services


PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_backend(request: Request) -> Services:
    services = get_services(request)
    if not services.backend_ready:
        raise HTTPException(status_code=503, detail="backend_unavailable", headers=PRIVATE_HEADERS)
    return services


def get_debug_config(request: Request) -> DebugConfig:
    return request.app.state.debug_config


def environment(request: Request) -> str:
    return request.app.state.settings.environment


def active_seeder(request: Request) -> Optional[TestDataSeeder]:
    """The seeder, when test data is switched on outside prod-like installs."""
    seeder = get_services(request).seeder
    if seeder is None or not get_debug_config(request).enable_test_data:
        return None
    if is_prod_like(environment(request)):
        return None
    return seeder


def current_session(request: Request) -> Optional[SessionRecord]:
    return getattr(request.state, "session", None)


async def load_auth_state(request: Request) -> AuthState:
    """Load (once per request) the signed-in user and their profile."""
    cached = getattr(request.state, "auth", None)
    if cached is not None:
        return cached
    session = current_session(request)
    if session is None:
        state = SIGNED_OUT
    else:
        services = require_backend(request)
        state = await services.auth_state.load(session)  # type: ignore[union-attr]
        if state.user is None:
            request.state.session = None
    request.state.auth = state
    return state


def notifier_for(request: Request) -> FlashNotifier:
    cached = getattr(request.state, "notifier", None)
    if cached is None:
        session = current_session(request)
        cached = FlashNotifier(get_services(request).sessions, session.session_id if session else None)
        request.state.notifier = cached
    return cached


def _user_view(state: Optional[AuthState]) -> Optional[Dict[str, Any]]:
    if state is None or state.user is None:
        return None
    profile = state.profile
    role = profile.role.value if profile else (state.user.role_hint.value if state.user.role_hint else "student")
    return {
        "id": state.user.id,
        "email": state.user.email,
        "name": (profile.full_name if profile and profile.full_name else state.user.email),
        "role": role,
    }


def _collect_flashes(request: Request) -> List[Tuple[str, str]]:
    flashes = read_stashed_flashes(request)
    session = current_session(request)
    if session is not None:
        flashes.extend(get_services(request).sessions.pop_flashes(session.session_id))
    notifier = getattr(request.state, "notifier", None)
    if notifier is not None and notifier.pending:
        flashes.extend(notifier.pending)
        notifier.pending = []
    return flashes


def render_page(
    request: Request,
    title: str,
    content: str,
    *,
    status_code: int = 200,
    refresh: Optional[Tuple[str, float]] = None,
    show_nav: bool = True,
    pending_count: Optional[int] = None,
    headers: Optional[Dict[str, str]] = None,
) -> HTMLResponse:
    """Wrap page content in the Layout and return an HTMLResponse.

    Behavior:
        - HTMX requests receive only the main fragment.
        - Flash notices from the session, the flash cookie and the current
          request are rendered once and then discarded.
        - Pages are always `Cache-Control: private, no-store`; they either
          carry user data or flash notices.
    """
    layout = Layout(
        title=title,
        content=content,
        user=_user_view(getattr(request.state, "auth", None)),
        show_nav=show_nav,
        current_path=request.url.path,
        flashes=_collect_flashes(request),
        refresh=refresh,
        pending_count=pending_count,
    )
    body = layout.render_fragment() if is_htmx(request) else layout.render()
    response = HTMLResponse(content=body, status_code=status_code, headers=dict(PRIVATE_HEADERS))
    if request.cookies.get(FLASH_COOKIE_NAME):
        response.delete_cookie(FLASH_COOKIE_NAME, path="/")
    if headers:
        for key, value in headers.items():
            response.headers[key] = value
    return response
