"StudyCore web app"
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv

from backend.identity_access.stores import SessionStore
from backend.maintenance.debug_flags import JsonFlagFile, load_debug_config
from backend.profiles.gate import LOGIN_PATH, SETUP_PATH, SIGN_IN_NOTICE

from . import config
from .auth_utils import SESSION_COOKIE_NAME
from .navigation import stash_flashes
from .routes.admin import admin_router
from .routes.auth import auth_router
from .routes.debug import debug_router
from .routes.profile import profile_router
from .routes.security import _is_same_origin
from .wiring import Services, wire_supabase_services


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via STUDYCORE_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("STUDYCORE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Fail fast on insecure production configuration.
config.ensure_secure_config_on_startup()

logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("studycore.web")


# --- App & Settings Setup -------------------------------------------------------

class AppSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return config.current_environment()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


SETTINGS = AppSettings()
SESSION_STORE = SessionStore()
FLAG_STORE = JsonFlagFile(config.debug_flags_file() or None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services = app.state.services
    if not services.backend_ready:
        await wire_supabase_services(
            services,
            settings=config.load_supabase_settings(),
            debug_config=app.state.debug_config,
            upsert_mode=config.profile_upsert_mode(),
            redirect_base=config.app_base_url(),
            allow_wipe=config.data_wipe_allowed(),
        )
    yield


app = FastAPI(title="StudyCore", description="Tutoring platform", version="0.1.0", lifespan=lifespan)
app.state.settings = SETTINGS
app.state.debug_config = load_debug_config(FLAG_STORE)
app.state.services = Services(sessions=SESSION_STORE, flag_store=FLAG_STORE)


# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(admin_router)
app.include_router(debug_router)


@app.get("/health")
async def health():
    services: Services = app.state.services
    return JSONResponse(
        {"status": "ok", "backend": "ready" if services.backend_ready else "unavailable"},
        headers={"Cache-Control": "no-store"},
    )


# --- Auth Middleware ------------------------------------------------------------

PUBLIC_PATHS = ("/health", "/favicon.ico", "/verify-email", "/auth-status", "/clear-data")
# Pages that decide on their own what a signed-out visitor sees.
GATE_MANAGED_PATHS = (SETUP_PATH,)


def _is_public_path(path: str) -> bool:
    return path.startswith(("/auth/", "/static/")) or path in PUBLIC_PATHS


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = request.app.state.services.sessions.get(sid) if sid else None
    # Expose the session record (tokens stay server-side) to the handlers.
    request.state.session = rec
    if rec is not None or _is_public_path(path) or path in GATE_MANAGED_PATHS:
        return await call_next(request)
    if "HX-Request" in request.headers:
        # Security: prevent intermediaries from caching unauthenticated HTMX responses
        return Response(
            status_code=401,
            headers={"HX-Redirect": LOGIN_PATH, "Cache-Control": "private, no-store", "Vary": "HX-Request"},
        )
    response = RedirectResponse(url=LOGIN_PATH, status_code=302, headers={"Cache-Control": "private, no-store"})
    stash_flashes(response, [("error", SIGN_IN_NOTICE)], environment=SETTINGS.environment)
    return response


@app.middleware("http")
async def csrf_same_origin(request: Request, call_next):
    if request.method == "POST" and not _is_same_origin(request):
        logger.warning("cross-origin POST rejected path=%s", request.url.path)
        return JSONResponse(
            {"error": "forbidden", "detail": "csrf_violation"},
            status_code=403,
            headers={"Cache-Control": "private, no-store"},
        )
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    connect_src = "'self'"
    supabase_url = (os.getenv("SUPABASE_URL") or "").strip()
    if supabase_url.startswith(("http://", "https://")):
        connect_src += " " + supabase_url.rstrip("/")
    if config.is_prod_like(SETTINGS.environment):
        # Harden CSP in production: avoid 'unsafe-inline' to reduce XSS surface.
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            f"img-src 'self' data:; font-src 'self' data:; connect-src {connect_src};"
        )
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    else:
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            f"img-src 'self' data:; font-src 'self' data:; connect-src {connect_src};"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response
