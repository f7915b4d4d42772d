"""
Supabase profiles repository against the in-memory client.

Requirements:
- Read failures become ProfileLookupError, write failures ProfileWriteError
  (with the Postgres code).
- The update touches only full_name, bio and updated_at.
- Approval queue helpers read the views and call the database functions.
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from backend.profiles.errors import ProfileLookupError, ProfileWriteError
from backend.profiles.repo_supabase import SupabaseProfilesRepo
from utils.fake_supabase import FakeAPIError, FakeSupabase, profile_row


pytestmark = pytest.mark.anyio("asyncio")


async def test_find_by_user_id_returns_profile_or_none():
    client = FakeSupabase()
    client.seed("profiles", profile_row("u1", full_name="Ada"), profile_row("u2", full_name="Bo"))
    repo = SupabaseProfilesRepo(client)

    found = await repo.find_by_user_id("u2")
    missing = await repo.find_by_user_id("nope")

    assert found is not None and found.full_name == "Bo"
    assert missing is None


async def test_read_errors_become_lookup_errors():
    client = FakeSupabase()
    client.fail_on[("profiles", "select")] = FakeAPIError("boom")
    with pytest.raises(ProfileLookupError):
        await SupabaseProfilesRepo(client).find_by_user_id("u1")


async def test_malformed_row_becomes_lookup_error():
    client = FakeSupabase()
    client.seed("profiles", profile_row("u1", role="superuser"))
    with pytest.raises(ProfileLookupError):
        await SupabaseProfilesRepo(client).find_by_user_id("u1")


async def test_error_payload_is_treated_as_failure():
    class PayloadClient(FakeSupabase):
        async def _execute(self, q):
            await super()._execute(q)
            return SimpleNamespace(data=None, error={"message": "denied", "code": "42501"})

    repo = SupabaseProfilesRepo(PayloadClient())
    with pytest.raises(ProfileLookupError):
        await repo.find_by_user_id("u1")
    with pytest.raises(ProfileWriteError) as exc:
        await repo.update_by_user_id("u1", full_name="Ada", bio=None)
    assert exc.value.code == "42501"


async def test_update_touches_only_editable_fields():
    client = FakeSupabase()
    client.seed("profiles", profile_row("u1", role="tutor", approved=False, email="a@example.com"))
    await SupabaseProfilesRepo(client).update_by_user_id("u1", full_name="Ada King", bio=None)
    row = client.rows("profiles")[0]
    assert (row["full_name"], row["bio"]) == ("Ada King", None)
    assert (row["role"], row["approved"], row["email"]) == ("tutor", False, "a@example.com")


async def test_duplicate_insert_reports_unique_violation():
    client = FakeSupabase()
    client.seed("profiles", profile_row("u1"))
    with pytest.raises(ProfileWriteError) as exc:
        await SupabaseProfilesRepo(client).insert(
            user_id="u1", email="a@example.com", full_name="Ada", bio=None, role="student"
        )
    assert exc.value.is_unique_violation


async def test_pending_and_recent_views_are_ordered():
    client = FakeSupabase()
    client.seed(
        "pending_approvals",
        {"user_id": "b", "created_at": "2026-02-02"},
        {"user_id": "a", "created_at": "2026-01-01"},
    )
    client.seed(
        "recent_approvals",
        {"user_id": "x", "approved_at": "2026-01-01"},
        {"user_id": "y", "approved_at": "2026-03-03"},
    )
    repo = SupabaseProfilesRepo(client)
    assert [r["user_id"] for r in await repo.list_pending()] == ["a", "b"]
    assert [r["user_id"] for r in await repo.list_recent_approvals()] == ["y", "x"]


async def test_count_pending_counts_unapproved_students_and_tutors():
    client = FakeSupabase()
    client.seed(
        "profiles",
        profile_row("s", role="student", approved=False),
        profile_row("t", role="tutor", approved=False),
        profile_row("a", role="admin", approved=False),
        profile_row("ok", role="student", approved=True),
    )
    assert await SupabaseProfilesRepo(client).count_pending() == 2


async def test_approve_and_reject_call_database_functions():
    client = FakeSupabase()
    client.rpc_results["reject_user"] = False
    repo = SupabaseProfilesRepo(client)
    assert await repo.approve("u1") is True
    assert await repo.reject("u2") is False
    assert client.rpc_calls == [
        ("approve_user", {"target_user_id": "u1"}),
        ("reject_user", {"target_user_id": "u2"}),
    ]


async def test_verbose_logging_logs_calls_at_info(caplog):
    client = FakeSupabase()
    repo = SupabaseProfilesRepo(client)
    caplog.set_level("INFO", logger="studycore.profiles")
    await repo.find_by_user_id("u1")
    assert "find_by_user_id" not in caplog.text
    repo.set_verbose(True)
    await repo.find_by_user_id("u1")
    assert "profiles repo: find_by_user_id user=u1" in caplog.text
