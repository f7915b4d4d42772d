"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make the repo root importable,
and give every test a fresh app state (sessions, services, debug flags) so
no session or flag leaks from one test into the next.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from backend.identity_access.domain import Identity, Role  # noqa: E402
from backend.identity_access.stores import SessionStore  # noqa: E402
from backend.identity_access.supabase_auth import SupabaseAuthGateway  # noqa: E402
from backend.maintenance.data_wipe import DataWiper  # noqa: E402
from backend.maintenance.debug_flags import DebugConfig, JsonFlagFile  # noqa: E402
from backend.maintenance.test_data import TestDataSeeder  # noqa: E402
from backend.profiles.approvals import ApprovalsService  # noqa: E402
from backend.profiles.repo_supabase import SupabaseProfilesRepo  # noqa: E402
from backend.profiles.setup import MODE_CHECK_THEN_WRITE  # noqa: E402
from utils.fake_supabase import FakeSupabase  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    """Run every test as a plain dev install unless the test says otherwise."""
    for var in (
        "STUDYCORE_ENV",
        "STUDYCORE_TRUST_PROXY",
        "ALLOW_DATA_WIPE",
        "DEBUG_USE_TEST_DATABASE",
        "DEBUG_FLAGS_FILE",
        "PROFILE_UPSERT_MODE",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def web_main():
    """The web app module with a fresh, unwired state."""
    from backend.web import main
    from backend.web.wiring import Services

    main.app.state.services = Services(sessions=SessionStore(), flag_store=JsonFlagFile(None))
    main.app.state.debug_config = DebugConfig()
    main.SETTINGS.override_environment(None)
    yield main
    main.SETTINGS.override_environment(None)


@dataclass
class Backend:
    client: FakeSupabase
    services: object
    repo: SupabaseProfilesRepo

    @property
    def sessions(self) -> SessionStore:
        return self.services.sessions  # type: ignore[attr-defined]

    def sign_in(
        self,
        user_id: str = "user-1",
        *,
        email: str = "ada@example.com",
        verified: bool = True,
        role_hint: Role | None = Role.STUDENT,
        access_token: str = "token-1",
    ) -> str:
        """Create a server-side session directly and return its id."""
        identity = Identity(id=user_id, email=email, email_verified=verified, role_hint=role_hint)
        rec = self.sessions.create(identity=identity, access_token=access_token, ttl_seconds=600)
        return rec.session_id


@pytest.fixture
def backend(web_main) -> Backend:
    """Wire the app to an in-memory Supabase fake (no network)."""
    from backend.web.wiring import attach_backend

    client = FakeSupabase()
    services = web_main.app.state.services
    repo = SupabaseProfilesRepo(client)

    async def client_factory():
        return client

    async def user_repo_factory(access_token: str) -> SupabaseProfilesRepo:
        return repo

    attach_backend(
        services,
        gateway=SupabaseAuthGateway(client_factory),
        repo=repo,
        approvals=ApprovalsService(repo, user_repo_factory),
        wiper=DataWiper(client),
        seeder=TestDataSeeder(client),
        upsert_mode=MODE_CHECK_THEN_WRITE,
    )
    return Backend(client=client, services=services, repo=repo)
