"""
Debug flags persistence, the test-data wiper and the test-data seeder.

Requirements:
- Flags default to (False, False, True, False); only "true"/"false" strings
  override a default.
- Clearing drops every debug key and keeps unrelated keys.
- The wiper deletes children before parents and stops at the first failure.
- The seeder writes parents before children, links children by the returned
  ids and never seeds a user that already has data.
"""
from __future__ import annotations

from datetime import datetime, timezone
import json

import pytest

from backend.maintenance.data_wipe import WIPE_ORDER, DataWipeError, DataWiper
from backend.maintenance.debug_flags import DebugConfig, JsonFlagFile, load_debug_config
from backend.maintenance.test_data import TestDataError, TestDataSeeder
from utils.fake_supabase import FakeAPIError, FakeSupabase


def test_defaults():
    config = DebugConfig()
    assert (config.enable_test_data, config.verbose_db_logging, config.log_auth_events, config.use_test_database) == (
        False,
        False,
        True,
        False,
    )


def test_from_storage_ignores_garbage_values():
    config = DebugConfig.from_storage(
        {"debug_VERBOSE_DB_LOGGING": "true", "debug_LOG_AUTH_EVENTS": "yes", "debug_USE_TEST_DATABASE": "false"}
    )
    assert config.verbose_db_logging is True
    assert config.log_auth_events is True
    assert config.use_test_database is False


def test_with_flag_rejects_unknown_names():
    with pytest.raises(ValueError):
        DebugConfig().with_flag("launch_rockets", True)
    assert DebugConfig().with_flag("enable_test_data", True).enable_test_data is True


def test_flag_file_roundtrip_and_clear(tmp_path):
    path = tmp_path / "flags.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
    store = JsonFlagFile(str(path))

    store.write(DebugConfig().with_flag("verbose_db_logging", True).to_storage())
    assert load_debug_config(store).verbose_db_logging is True
    assert store.read()["theme"] == "dark"

    store.clear()
    assert store.read() == {"theme": "dark"}
    assert load_debug_config(store) == DebugConfig.reset()


def test_unreadable_flag_file_means_defaults(tmp_path):
    path = tmp_path / "flags.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_debug_config(JsonFlagFile(str(path))) == DebugConfig()


def test_flag_file_without_path_is_a_noop():
    store = JsonFlagFile(None)
    store.write({"debug_ENABLE_TEST_DATA": "true"})
    assert store.read() == {}


@pytest.mark.anyio("asyncio")
async def test_wipe_deletes_all_rows_in_order():
    client = FakeSupabase()
    for table in WIPE_ORDER:
        client.seed(table, {"id": f"{table}-1"}, {"id": f"{table}-2"})
    client.seed("profiles", {"id": "p1", "user_id": "u1"})

    wiped = await DataWiper(client).wipe_all()

    assert wiped == list(WIPE_ORDER)
    assert [t for t, op in client.calls if op == "delete"] == list(WIPE_ORDER)
    assert all(client.rows(t) == [] for t in WIPE_ORDER)
    assert client.rows("profiles") == [{"id": "p1", "user_id": "u1"}]


@pytest.mark.anyio("asyncio")
async def test_wipe_stops_at_first_failure():
    client = FakeSupabase()
    client.seed("schedules", {"id": "s1"})
    client.seed("classes", {"id": "c1"})
    client.fail_on[("assignments", "delete")] = FakeAPIError("fk violation", code="23503")

    with pytest.raises(DataWipeError) as exc:
        await DataWiper(client).wipe_all()

    assert exc.value.table == "assignments"
    assert exc.value.wiped == ["submissions", "resources"]
    assert client.rows("schedules") == [{"id": "s1"}]
    assert client.rows("classes") == [{"id": "c1"}]


# Wednesday
FIXED_NOW = datetime(2026, 3, 4, 8, 30, tzinfo=timezone.utc)


def _seeder(client: FakeSupabase) -> TestDataSeeder:
    return TestDataSeeder(client, clock=lambda: FIXED_NOW)


def _insert_order(client: FakeSupabase):
    order = []
    for table, op in client.calls:
        if op == "insert" and table not in order:
            order.append(table)
    return order


@pytest.mark.anyio("asyncio")
async def test_tutor_gets_classes_with_linked_children():
    client = FakeSupabase()

    result = await _seeder(client).seed_for("t1", "tutor")

    assert result.seeded
    assert result.created == {"classes": 4, "schedules": 8, "assignments": 10, "resources": 10}
    assert _insert_order(client) == ["classes", "schedules", "assignments", "resources"]
    class_ids = {row["id"] for row in client.rows("classes")}
    assert {row["tutor_id"] for row in client.rows("classes")} == {"t1"}
    assert client.rows("classes")[0]["name"] == "Mathematics 101"
    for table in ("schedules", "assignments", "resources"):
        assert {row["class_id"] for row in client.rows(table)} == class_ids


@pytest.mark.anyio("asyncio")
async def test_schedules_fall_on_upcoming_weekdays():
    client = FakeSupabase()
    await _seeder(client).seed_for("t1", "tutor")

    first = client.rows("schedules")[0]
    # Sunday 9:00 after Wednesday 2026-03-04.
    assert first["day_of_week"] == 0
    assert first["start_time"] == "2026-03-08T09:00:00+00:00"
    assert first["end_time"] == "2026-03-08T11:00:00+00:00"
    assert all(row["recurring"] for row in client.rows("schedules"))
    assert {row["day_of_week"] for row in client.rows("schedules")} <= {0, 1, 2, 3, 4}


@pytest.mark.anyio("asyncio")
async def test_tutor_with_classes_is_left_alone():
    client = FakeSupabase()
    client.seed("classes", {"id": "c1", "tutor_id": "t1"})

    result = await _seeder(client).seed_for("t1", "tutor")

    assert not result.seeded
    assert result.reason == "already_has_classes"
    assert client.ops("classes") == ["select"]


@pytest.mark.anyio("asyncio")
async def test_student_is_enrolled_in_at_most_three_existing_classes():
    client = FakeSupabase()
    client.seed("classes", *({"id": f"c{i}", "tutor_id": "t9"} for i in range(5)))

    result = await _seeder(client).seed_for("s1", "student")

    assert result.created == {"enrollments": 3}
    rows = client.rows("enrollments")
    assert [row["class_id"] for row in rows] == ["c0", "c1", "c2"]
    assert {(row["student_id"], row["status"]) for row in rows} == {("s1", "active")}
    assert client.auth.calls == []


@pytest.mark.anyio("asyncio")
async def test_student_without_any_class_gets_a_test_tutor_first():
    client = FakeSupabase()

    result = await _seeder(client).seed_for("s1", "student")

    assert _insert_order(client) == ["profiles", "classes", "schedules", "assignments", "resources", "enrollments"]
    assert result.created["enrollments"] == 3
    (tutor,) = client.rows("profiles")
    assert (tutor["role"], tutor["full_name"]) == ("tutor", "Test Tutor")
    assert client.auth.calls[0][0] == "admin.create_user"
    assert {row["tutor_id"] for row in client.rows("classes")} == {tutor["user_id"]}


@pytest.mark.anyio("asyncio")
async def test_enrolled_student_is_left_alone():
    client = FakeSupabase()
    client.seed("enrollments", {"id": "e1", "student_id": "s1", "class_id": "c1"})

    result = await _seeder(client).seed_for("s1", "student")

    assert result.reason == "already_enrolled"
    assert client.ops("enrollments") == ["select"]
    assert client.ops("classes") == []


@pytest.mark.anyio("asyncio")
async def test_admins_are_not_seeded():
    client = FakeSupabase()
    result = await _seeder(client).seed_for("a1", "admin")
    assert result.reason == "unsupported_role"
    assert client.calls == []


@pytest.mark.anyio("asyncio")
async def test_seed_stops_at_first_failing_table():
    client = FakeSupabase()
    client.fail_on[("assignments", "insert")] = FakeAPIError("rls", code="42501")

    with pytest.raises(TestDataError) as exc:
        await _seeder(client).seed_for("t1", "tutor")

    assert exc.value.table == "assignments"
    assert len(client.rows("classes")) == 4
    assert len(client.rows("schedules")) == 8
    assert client.ops("resources") == []


@pytest.mark.anyio("asyncio")
async def test_failed_test_tutor_account_writes_nothing():
    client = FakeSupabase()
    client.auth.fail["admin.create_user"] = FakeAPIError("not allowed")

    with pytest.raises(TestDataError) as exc:
        await _seeder(client).seed_for("s1", "student")

    assert exc.value.table == "auth.users"
    assert client.ops("profiles") == []
    assert client.ops("classes") == ["select"]
