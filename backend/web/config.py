"""
Configuration and startup security checks for StudyCore.

Why: A tutoring platform holds personal data of minors and adults; an
accidental insecure deployment must not start. This module provides a single
guard that enforces minimal production safety constraints without burdening
local development, plus small typed readers for the remaining settings.

Permissions: The caller needs no special privileges. The functions simply read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

from dataclasses import dataclass
import os


_DUMMY_MARKERS = ("DUMMY_DO_NOT_USE", "CHANGE_ME", "YOUR_")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes")


def _is_placeholder(value: str) -> bool:
    upper = value.upper()
    return any(upper.startswith(marker) for marker in _DUMMY_MARKERS)


def current_environment() -> str:
    return (os.getenv("STUDYCORE_ENV", "dev") or "dev").strip().lower()


def is_prod_like(env: str | None = None) -> bool:
    return _is_prod_like(env if env is not None else current_environment())


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - SUPABASE_URL must use https.
    - Service Role and anon keys must be set and not dummy placeholders.
    - The test-data wiper must be disabled.
    - The test database override must be disabled.
    """
    if not is_prod_like():
        return  # dev/test remain permissive

    url = (os.getenv("SUPABASE_URL", "") or "").strip()
    if not url.lower().startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    for key in ("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY"):
        value = (os.getenv(key, "") or "").strip()
        if not value or _is_placeholder(value):
            raise SystemExit(f"Refusing to start: {key} is unset or a dummy placeholder in production.")

    if _flag("ALLOW_DATA_WIPE"):
        raise SystemExit("Refusing to start: ALLOW_DATA_WIPE must be false in production/staging.")

    if _flag("DEBUG_USE_TEST_DATABASE"):
        raise SystemExit("Refusing to start: DEBUG_USE_TEST_DATABASE must be false in production/staging.")


@dataclass(frozen=True)
class SupabaseSettings:
    url: str
    anon_key: str
    service_role_key: str
    timeout_seconds: float = 10.0
    test_url: str = ""
    test_key: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key and self.service_role_key)

    def for_database(self, use_test_database: bool) -> tuple[str, str]:
        """Return (url, service key) for data access, honoring the test override."""
        if use_test_database and self.test_url and self.test_key:
            return self.test_url, self.test_key
        return self.url, self.service_role_key


def load_supabase_settings() -> SupabaseSettings:
    raw_timeout = (os.getenv("SUPABASE_TIMEOUT_SECONDS", "10") or "10").strip()
    try:
        timeout = max(1.0, float(raw_timeout))
    except ValueError:
        timeout = 10.0
    return SupabaseSettings(
        url=(os.getenv("SUPABASE_URL", "") or "").strip(),
        anon_key=(os.getenv("SUPABASE_ANON_KEY", "") or "").strip(),
        service_role_key=(os.getenv("SUPABASE_SERVICE_ROLE_KEY", "") or "").strip(),
        timeout_seconds=timeout,
        test_url=(os.getenv("SUPABASE_TEST_URL", "") or "").strip(),
        test_key=(os.getenv("SUPABASE_TEST_KEY", "") or "").strip(),
    )


def app_base_url() -> str:
    return (os.getenv("APP_BASE_URL", "") or "").strip().rstrip("/")


def profile_upsert_mode() -> str:
    return (os.getenv("PROFILE_UPSERT_MODE", "check_then_write") or "check_then_write").strip().lower()


def session_ttl_seconds() -> int:
    try:
        return max(60, int(os.getenv("SESSION_TTL_SECONDS", "3600")))
    except ValueError:
        return 3600


def debug_flags_file() -> str:
    return (os.getenv("DEBUG_FLAGS_FILE", "") or "").strip()


def data_wipe_allowed() -> bool:
    """The wiper is available only when explicitly enabled outside prod."""
    return _flag("ALLOW_DATA_WIPE") and not is_prod_like()


def log_level() -> str:
    return (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()
