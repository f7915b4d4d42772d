"""
Wiring of the Supabase-backed services into the web app.

Why:
    App startup may happen before Supabase is reachable or configured (local
    development without a project). The app still starts; pages that need
    the backend answer 503 until wiring succeeds.

Security:
    - The shared data client uses SUPABASE_SERVICE_ROLE_KEY and never leaves
      the server.
    - Auth calls use a fresh anon-key client per call so no signed-in session
      is shared between users.
    - Approval calls use an anon-key client bound to the admin's access token.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import logging

from backend.identity_access.auth_state import AuthStateProvider
from backend.identity_access.stores import SessionStore
from backend.identity_access.supabase_auth import SupabaseAuthGateway
from backend.maintenance.data_wipe import DataWiper
from backend.maintenance.debug_flags import DebugConfig, JsonFlagFile
from backend.maintenance.test_data import TestDataSeeder
from backend.profiles.approvals import ApprovalsService
from backend.profiles.repo_supabase import SupabaseProfilesRepo
from backend.profiles.setup import ProfileSetupService

from .config import SupabaseSettings


logger = logging.getLogger("studycore.web")


@dataclass
class Services:
    sessions: SessionStore
    flag_store: JsonFlagFile
    gateway: Optional[SupabaseAuthGateway] = None
    repo: Optional[SupabaseProfilesRepo] = None
    auth_state: Optional[AuthStateProvider] = None
    setup: Optional[ProfileSetupService] = None
    approvals: Optional[ApprovalsService] = None
    wiper: Optional[DataWiper] = None
    seeder: Optional[TestDataSeeder] = None

    @property
    def backend_ready(self) -> bool:
        return self.auth_state is not None and self.setup is not None

    def apply_debug_config(self, config: DebugConfig) -> None:
        """Push the logging-related flags into the live adapters."""
        if self.repo is not None:
            self.repo.set_verbose(config.verbose_db_logging)
        if self.gateway is not None:
            self.gateway.set_log_events(config.log_auth_events)


def attach_backend(
    services: Services,
    *,
    gateway: SupabaseAuthGateway,
    repo: SupabaseProfilesRepo,
    approvals: ApprovalsService,
    wiper: Optional[DataWiper],
    seeder: Optional[TestDataSeeder] = None,
    upsert_mode: str,
) -> None:
    services.gateway = gateway
    services.repo = repo
    services.auth_state = AuthStateProvider(gateway, repo, services.sessions)
    services.setup = ProfileSetupService(repo, mode=upsert_mode)
    services.approvals = approvals
    services.wiper = wiper
    services.seeder = seeder


async def wire_supabase_services(
    services: Services,
    *,
    settings: SupabaseSettings,
    debug_config: DebugConfig,
    upsert_mode: str,
    redirect_base: str,
    allow_wipe: bool,
) -> bool:
    """Create the Supabase clients and attach the services.

    Returns False (and leaves the backend unwired) when Supabase is not
    configured or the data client cannot be created.
    """
    if not settings.configured:
        logger.warning("Supabase not configured; backend pages are unavailable")
        return False

    from supabase import AsyncClientOptions, acreate_client

    def _options() -> AsyncClientOptions:
        return AsyncClientOptions(
            postgrest_client_timeout=settings.timeout_seconds,
            auto_refresh_token=False,
            persist_session=False,
        )

    async def anon_client() -> Any:
        return await acreate_client(settings.url, settings.anon_key, options=_options())

    async def admin_scoped_repo(access_token: str) -> SupabaseProfilesRepo:
        client = await anon_client()
        client.postgrest.auth(access_token)
        return SupabaseProfilesRepo(client, verbose=debug_config.verbose_db_logging)

    db_url, db_key = settings.for_database(debug_config.use_test_database)
    try:
        data_client = await acreate_client(db_url, db_key, options=_options())
    except Exception as exc:
        logger.warning("Supabase data client unavailable: %s", exc.__class__.__name__)
        return False
    if debug_config.use_test_database:
        logger.warning("Using the test database for data access")

    repo = SupabaseProfilesRepo(data_client, verbose=debug_config.verbose_db_logging)
    attach_backend(
        services,
        gateway=SupabaseAuthGateway(
            anon_client,
            email_redirect_base=redirect_base,
            log_events=debug_config.log_auth_events,
        ),
        repo=repo,
        approvals=ApprovalsService(repo, admin_scoped_repo),
        wiper=DataWiper(data_client) if allow_wipe else None,
        seeder=TestDataSeeder(data_client),
        upsert_mode=upsert_mode,
    )
    logger.info("Supabase services wired (upsert mode: %s)", upsert_mode)
    return True


__all__ = ["Services", "attach_backend", "wire_supabase_services"]
