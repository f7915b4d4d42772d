"""
Web implementations of the navigation and notification ports.

Services never build HTTP responses. They call `navigator.navigate()` and
`notifier.success()/error()/info()`; the route then turns the recorded
intent into a response:

- no delay: `303 See Other` (or `HX-Redirect` for HTMX requests)
- delayed: the rendered page carries `<meta http-equiv="refresh">`

Notices are stored as flashes on the server-side session. Requests without
a session keep them in a short-lived cookie so they survive one redirect.
"""
from __future__ import annotations

from typing import List, Optional, Tuple
import base64
import json

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from backend.identity_access.stores import SessionStore

from .auth_utils import FLASH_COOKIE_NAME, cookie_opts


Flash = Tuple[str, str]
FLASH_COOKIE_MAX_AGE = 60


class WebNavigator:
    """Records the last navigation request of a handler."""

    def __init__(self) -> None:
        self.target: Optional[str] = None
        self.delay: float = 0.0

    def navigate(self, path: str, *, delay: float = 0.0) -> None:
        self.target = path
        self.delay = max(0.0, float(delay))

    @property
    def requested(self) -> bool:
        return self.target is not None

    @property
    def immediate(self) -> bool:
        return self.target is not None and self.delay == 0.0


class FlashNotifier:
    def __init__(self, sessions: SessionStore, session_id: Optional[str]) -> None:
        self._sessions = sessions
        self._session_id = session_id
        self.pending: List[Flash] = []

    def _push(self, level: str, message: str) -> None:
        if self._session_id and self._sessions.get(self._session_id) is not None:
            self._sessions.push_flash(self._session_id, level, message)
        else:
            self.pending.append((level, message))

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def info(self, message: str) -> None:
        self._push("info", message)


def is_htmx(request: Request) -> bool:
    return bool(request.headers.get("HX-Request"))


def redirect_response(request: Request, target: str, *, notifier: Optional[FlashNotifier] = None) -> Response:
    """Immediate navigation; HTMX requests receive `HX-Redirect` instead of 303."""
    headers = {"Cache-Control": "private, no-store"}
    if is_htmx(request):
        headers["HX-Redirect"] = target
        response: Response = Response(status_code=204, headers=headers)
    else:
        response = RedirectResponse(url=target, status_code=303, headers=headers)
    if notifier is not None and notifier.pending:
        stash_flashes(response, notifier.pending, environment=_environment(request))
    return response


def stash_flashes(response: Response, flashes: List[Flash], *, environment: str) -> None:
    opts = cookie_opts(environment)
    payload = base64.urlsafe_b64encode(json.dumps([[level, message] for level, message in flashes]).encode("utf-8")).decode("ascii")
    response.set_cookie(
        key=FLASH_COOKIE_NAME,
        value=payload,
        max_age=FLASH_COOKIE_MAX_AGE,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
    )


def read_stashed_flashes(request: Request) -> List[Flash]:
    raw = request.cookies.get(FLASH_COOKIE_NAME)
    if not raw:
        return []
    try:
        data = json.loads(base64.urlsafe_b64decode(raw.encode("ascii")).decode("utf-8"))
    except ValueError:
        return []
    flashes: List[Flash] = []
    if isinstance(data, list):
        for item in data:
            if isinstance(item, list) and len(item) == 2 and all(isinstance(x, str) for x in item):
                flashes.append((item[0], item[1]))
    return flashes


def _environment(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "environment", "dev")


__all__ = [
    "FlashNotifier",
    "WebNavigator",
    "is_htmx",
    "read_stashed_flashes",
    "redirect_response",
    "stash_flashes",
]
