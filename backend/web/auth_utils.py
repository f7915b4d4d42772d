"""
Shared authentication utilities.

Why:
    Avoid duplicating cookie policy logic across modules (main app
    middleware and the auth router). Keeping a single helper improves
    consistency.

Design:
    `cookie_opts` is pure: it accepts an environment string and returns the
    corresponding cookie flags. The setters below apply those flags to a
    response.
"""

from __future__ import annotations

from fastapi import Response


SESSION_COOKIE_NAME = "studycore_session"
FLASH_COOKIE_NAME = "studycore_flash"
DEBUG_COOKIE_PREFIX = "debug_"


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"  # Allow the email verification link to carry the cookie
    """
    # SameSite=Lax keeps the session on top-level navigations, e.g. when the
    # user follows the verification link from their mail client.
    return {"secure": True, "samesite": "lax"}


def set_session_cookie(response: Response, value: str, *, environment: str, max_age: int | None = None) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session_cookie(response: Response, *, environment: str) -> None:
    opts = cookie_opts(environment)
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=opts["secure"],
        samesite=opts["samesite"],
        httponly=True,
    )
