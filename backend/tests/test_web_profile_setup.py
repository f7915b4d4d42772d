"""
Profile setup page, dashboard and approval waiting room over HTTP.

Requirements:
- GET /setup-profile follows the access gate (login, verify, dashboard, form).
- POST /setup-profile validates (400), writes once, notifies and schedules
  the dashboard redirect (200 + refresh); DB failures answer 502.
- A concurrent second submit is rejected with 409 and writes nothing.
- Dashboard pages follow the route guard; with test data switched on, a
  new student or tutor gets sample data once.
"""
import anyio
import pytest
import httpx
from httpx import ASGITransport

from backend.identity_access.domain import Role
from backend.maintenance.debug_flags import DebugConfig
from backend.web.auth_utils import SESSION_COOKIE_NAME
from utils.fake_supabase import FakeAPIError, profile_row


pytestmark = pytest.mark.anyio("asyncio")


def _client(main, sid=None) -> httpx.AsyncClient:
    cookies = {SESSION_COOKIE_NAME: sid} if sid else None
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test", cookies=cookies)


def _unverified_session(backend):
    user = backend.client.auth.add_user("new@example.com", "secret1", verified=False)
    token = backend.client.auth.token_for("new@example.com")
    sid = backend.sign_in(user["id"], email="new@example.com", verified=False, access_token=token)
    return sid, user["id"]


async def test_form_renders_for_verified_user_without_profile(web_main, backend):
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/setup-profile")
    assert r.status_code == 200
    assert 'action="/setup-profile"' in r.text
    assert "ada@example.com" in r.text
    assert r.headers["Cache-Control"] == "private, no-store"


async def test_form_prefills_incomplete_profile(web_main, backend):
    backend.client.seed("profiles", profile_row("u1", full_name="", bio="Chemistry nerd"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/setup-profile")
    assert r.status_code == 200
    assert "Chemistry nerd" in r.text


async def test_completed_profile_goes_to_dashboard(web_main, backend):
    backend.client.seed("profiles", profile_row("u1"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/setup-profile", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"
    assert backend.sessions.get(sid).flashes == []


async def test_unverified_user_goes_to_verify_page_with_notice(web_main, backend):
    sid, _ = _unverified_session(backend)
    async with _client(web_main, sid) as client:
        r = await client.get("/setup-profile", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/verify-email"
    assert backend.sessions.get(sid).flashes == [("error", "Please verify your email first")]


async def test_htmx_gate_redirect_uses_hx_redirect(web_main, backend):
    backend.client.seed("profiles", profile_row("u1"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/setup-profile", headers={"HX-Request": "true"})
    assert r.status_code == 204
    assert r.headers["HX-Redirect"] == "/dashboard"


async def test_submit_creates_profile_and_schedules_redirect(web_main, backend):
    sid = backend.sign_in("u1", role_hint=Role.TUTOR)
    async with _client(web_main, sid) as client:
        await client.get("/setup-profile")
        r = await client.post("/setup-profile", data={"full_name": "  Ada Lovelace ", "bio": ""})

    assert r.status_code == 200
    assert '<meta http-equiv="refresh" content="1;url=/dashboard">' in r.text
    assert "Profile updated successfully!" in r.text
    assert backend.client.ops("profiles").count("insert") == 1
    row = backend.client.rows("profiles")[0]
    assert (row["full_name"], row["bio"], row["role"]) == ("Ada Lovelace", None, "tutor")


async def test_submit_updates_existing_row(web_main, backend):
    backend.client.seed("profiles", profile_row("u1", full_name=None, bio="old"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.post("/setup-profile", data={"full_name": "Ada King", "bio": "new"})
    assert r.status_code == 200
    assert backend.client.ops("profiles").count("update") == 1
    assert "insert" not in backend.client.ops("profiles")
    assert backend.client.rows("profiles")[0]["bio"] == "new"


async def test_invalid_name_is_shown_inline_and_nothing_is_written(web_main, backend):
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.post("/setup-profile", data={"full_name": " A ", "bio": "hi"})
    assert r.status_code == 400
    assert "Name is required and must be at least 2 characters" in r.text
    assert set(backend.client.ops("profiles")) == {"select"}


async def test_write_failure_answers_502_and_form_stays_editable(web_main, backend):
    backend.client.fail_on[("profiles", "insert")] = FakeAPIError("rls")
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.post("/setup-profile", data={"full_name": "Ada Lovelace"})
    assert r.status_code == 502
    assert r.text.count("Failed to update profile") == 1
    assert 'value="Ada Lovelace"' in r.text
    assert "Save profile" in r.text
    assert "disabled" not in r.text.split('action="/setup-profile"', 1)[1]


async def test_concurrent_second_submit_is_rejected(web_main, backend):
    sid = backend.sign_in("u1")
    hold = backend.client.hold("profiles", "insert")
    responses = {}

    async with _client(web_main, sid) as client:

        async def first():
            responses["first"] = await client.post("/setup-profile", data={"full_name": "Ada Lovelace"})

        async with anyio.create_task_group() as tg:
            tg.start_soon(first)
            await hold.started.wait()
            responses["second"] = await client.post("/setup-profile", data={"full_name": "Ada Lovelace"})
            hold.release.set()

    assert responses["first"].status_code == 200
    assert responses["second"].status_code == 409
    assert backend.client.ops("profiles").count("insert") == 1


async def test_edit_after_successful_save_updates_the_row(web_main, backend):
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        first = await client.post("/setup-profile", data={"full_name": "Old Name"})
        second = await client.post("/setup-profile", data={"full_name": "New Name", "bio": "Tutor of Latin"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert "Profile updated successfully!" in second.text
    assert backend.client.ops("profiles").count("insert") == 1
    assert backend.client.ops("profiles").count("update") == 1
    row = backend.client.rows("profiles")[0]
    assert (row["full_name"], row["bio"]) == ("New Name", "Tutor of Latin")


async def test_submit_without_session_redirects_to_login(web_main, backend):
    async with _client(web_main) as client:
        r = await client.post("/setup-profile", data={"full_name": "Ada Lovelace"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/login"
    assert backend.client.ops("profiles") == []


async def test_unverified_submit_is_rejected(web_main, backend):
    sid, _ = _unverified_session(backend)
    async with _client(web_main, sid) as client:
        r = await client.post("/setup-profile", data={"full_name": "Ada Lovelace"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/verify-email"
    assert "insert" not in backend.client.ops("profiles")


async def test_dashboard_for_approved_student(web_main, backend):
    backend.client.seed("profiles", profile_row("u1"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/dashboard")
    assert r.status_code == 200
    assert "Welcome, Ada Lovelace" in r.text
    assert "/admin/approvals" not in r.text


def _enable_test_data(main):
    main.app.state.debug_config = DebugConfig().with_flag("enable_test_data", True)


async def test_dashboard_creates_test_data_for_new_tutor(web_main, backend):
    _enable_test_data(web_main)
    backend.client.seed("profiles", profile_row("u1", role="tutor"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        first = await client.get("/dashboard")
        second = await client.get("/dashboard")
    assert first.status_code == 200
    assert "Created test data for your account" in first.text
    assert "Created test data for your account" not in second.text
    assert backend.client.ops("classes").count("insert") == 4
    assert {row["tutor_id"] for row in backend.client.rows("classes")} == {"u1"}


async def test_dashboard_leaves_data_alone_when_test_data_is_off(web_main, backend):
    backend.client.seed("profiles", profile_row("u1", role="tutor"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/dashboard")
    assert r.status_code == 200
    assert backend.client.ops("classes") == []


async def test_dashboard_never_seeds_in_prod(web_main, backend):
    _enable_test_data(web_main)
    web_main.SETTINGS.override_environment("prod")
    backend.client.seed("profiles", profile_row("u1", role="tutor"))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        await client.get("/dashboard")
    assert backend.client.ops("classes") == []


async def test_dashboard_still_renders_when_test_data_fails(web_main, backend):
    _enable_test_data(web_main)
    backend.client.seed("profiles", profile_row("u1"))
    backend.client.fail_on[("enrollments", "select")] = FakeAPIError("down")
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/dashboard")
    assert r.status_code == 200
    assert "Welcome, Ada Lovelace" in r.text
    assert "Failed to create test data" in r.text


@pytest.mark.parametrize(
    "row,target",
    [
        (None, "/setup-profile"),
        (profile_row("u1", full_name="  "), "/setup-profile"),
        (profile_row("u1", role="tutor", approved=False), "/pending-approval"),
    ],
)
async def test_dashboard_guard_redirects(web_main, backend, row, target):
    if row is not None:
        backend.client.seed("profiles", row)
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == target


async def test_pending_page_for_unapproved_tutor(web_main, backend):
    backend.client.seed("profiles", profile_row("u1", role="tutor", approved=False))
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/pending-approval")
        backend.client.rows("profiles")[0]["approved"] = True
        after = await client.get("/pending-approval", follow_redirects=False)
    assert r.status_code == 200
    assert "Account pending approval" in r.text
    assert after.status_code == 303
    assert after.headers["location"] == "/dashboard"


async def test_admin_dashboard_shows_pending_count(web_main, backend):
    backend.client.seed(
        "profiles",
        profile_row("admin", role="admin", approved=False),
        profile_row("s1", role="student", approved=False),
        profile_row("t1", role="tutor", approved=False),
    )
    sid = backend.sign_in("admin")
    async with _client(web_main, sid) as client:
        r = await client.get("/dashboard")
    assert r.status_code == 200
    assert "2 account(s) waiting for approval" in r.text
    assert '<span class="badge" aria-label="pending approvals">2</span>' in r.text


async def test_home_redirects_to_dashboard(web_main, backend):
    sid = backend.sign_in("u1")
    async with _client(web_main, sid) as client:
        r = await client.get("/", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"
