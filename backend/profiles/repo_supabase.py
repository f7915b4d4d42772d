"""
Supabase-backed repository for the `profiles` table and the approval views.

The client is duck-typed to keep tests free of network access. It is
expected to behave like `supabase.AsyncClient`:

- `client.table(name)` returns a query builder offering
  `select/insert/update/delete`, filters `eq/neq/in_`, `order`, `limit` and
  an awaitable `execute()` whose result has `.data` (list) and `.count`.
- `client.rpc(fn, params)` returns a builder with an awaitable `execute()`.

Errors:
    Any client exception (or a response carrying an `error` payload) raised by
    a read becomes `ProfileLookupError`; by a write becomes
    `ProfileWriteError` carrying the Postgres error code when available.

Security:
    The client decides the privilege level. The shared data client uses the
    Service Role key; approval calls use a client bound to the admin's access
    token so the database functions can check the caller's role.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from .errors import ProfileLookupError, ProfileWriteError
from .models import Profile


logger = logging.getLogger("studycore.profiles")

PROFILES_TABLE = "profiles"
PENDING_VIEW = "pending_approvals"
RECENT_VIEW = "recent_approvals"
PENDING_ROLES = ["student", "tutor"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_code(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) if code is not None else None


def _check_payload(res: Any) -> Any:
    # Older client versions report errors in the response instead of raising.
    err = getattr(res, "error", None)
    if err:
        code = err.get("code") if isinstance(err, dict) else getattr(err, "code", None)
        raise _PayloadError(str(err), code)
    return res


class _PayloadError(RuntimeError):
    def __init__(self, message: str, code: Any) -> None:
        super().__init__(message)
        self.code = code


def _rows(res: Any) -> List[Dict[str, Any]]:
    data = getattr(res, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return [row for row in data if isinstance(row, dict)]


class SupabaseProfilesRepo:
    """Profile reads and single-row writes keyed by `user_id`."""

    def __init__(self, client: Any, *, verbose: bool = False) -> None:
        self._client = client
        self._call_level = logging.INFO if verbose else logging.DEBUG

    def set_verbose(self, verbose: bool) -> None:
        self._call_level = logging.INFO if verbose else logging.DEBUG

    def _log_call(self, op: str, user_id: Optional[str] = None) -> None:
        logger.log(self._call_level, "profiles repo: %s user=%s", op, user_id or "-")

    async def _read(self, op: str, query: Any) -> Any:
        try:
            return _check_payload(await query.execute())
        except Exception as exc:
            logger.warning("profiles %s failed: %s", op, exc.__class__.__name__)
            raise ProfileLookupError(op) from exc

    async def _write(self, op: str, query: Any) -> Any:
        try:
            return _check_payload(await query.execute())
        except Exception as exc:
            code = _error_code(exc)
            logger.warning("profiles %s failed: %s code=%s", op, exc.__class__.__name__, code or "-")
            raise ProfileWriteError(op, code=code) from exc

    # --- Profile rows ------------------------------------------------------------

    async def find_by_user_id(self, user_id: str) -> Optional[Profile]:
        """Point lookup; returns None when no row exists."""
        self._log_call("find_by_user_id", user_id)
        query = self._client.table(PROFILES_TABLE).select("*").eq("user_id", user_id).limit(1)
        rows = _rows(await self._read("find_by_user_id", query))
        if not rows:
            return None
        try:
            return Profile.model_validate(rows[0])
        except ValidationError as exc:
            logger.warning("profiles find_by_user_id returned a malformed row: %s", exc.__class__.__name__)
            raise ProfileLookupError("find_by_user_id") from exc

    async def update_by_user_id(self, user_id: str, *, full_name: str, bio: Optional[str]) -> None:
        """Update only the user-editable fields plus `updated_at`."""
        self._log_call("update_by_user_id", user_id)
        fields = {"full_name": full_name, "bio": bio, "updated_at": utc_now_iso()}
        query = self._client.table(PROFILES_TABLE).update(fields).eq("user_id", user_id)
        await self._write("update_by_user_id", query)

    async def insert(
        self,
        *,
        user_id: str,
        email: str,
        full_name: str,
        bio: Optional[str],
        role: str,
    ) -> None:
        self._log_call("insert", user_id)
        now = utc_now_iso()
        row = {
            "user_id": user_id,
            "email": email,
            "full_name": full_name,
            "bio": bio,
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        await self._write("insert", self._client.table(PROFILES_TABLE).insert(row))

    async def insert_or_update(
        self,
        *,
        user_id: str,
        email: str,
        full_name: str,
        bio: Optional[str],
        role: str,
    ) -> str:
        """Insert, falling back to an update when the row already exists.

        Relies on the unique `user_id` constraint: a concurrent insert for the
        same user surfaces as a unique violation, never as a duplicate row.
        Returns "inserted" or "updated".
        """
        try:
            await self.insert(user_id=user_id, email=email, full_name=full_name, bio=bio, role=role)
            return "inserted"
        except ProfileWriteError as exc:
            if not exc.is_unique_violation:
                raise
        await self.update_by_user_id(user_id, full_name=full_name, bio=bio)
        return "updated"

    # --- Approval queue ----------------------------------------------------------

    async def list_pending(self) -> List[Dict[str, Any]]:
        self._log_call("list_pending")
        query = self._client.table(PENDING_VIEW).select("*").order("created_at", desc=False)
        return _rows(await self._read("list_pending", query))

    async def list_recent_approvals(self) -> List[Dict[str, Any]]:
        self._log_call("list_recent_approvals")
        query = self._client.table(RECENT_VIEW).select("*").order("approved_at", desc=True)
        return _rows(await self._read("list_recent_approvals", query))

    async def count_pending(self) -> int:
        self._log_call("count_pending")
        query = (
            self._client.table(PROFILES_TABLE)
            .select("id", count="exact")
            .eq("approved", False)
            .in_("role", PENDING_ROLES)
        )
        res = await self._read("count_pending", query)
        count = getattr(res, "count", None)
        if count is None:
            return len(_rows(res))
        return int(count)

    async def approve(self, user_id: str) -> bool:
        """Call the `approve_user` function; False when no such profile."""
        self._log_call("approve", user_id)
        res = await self._write("approve", self._client.rpc("approve_user", {"target_user_id": user_id}))
        return bool(getattr(res, "data", False))

    async def reject(self, user_id: str) -> bool:
        self._log_call("reject", user_id)
        res = await self._write("reject", self._client.rpc("reject_user", {"target_user_id": user_id}))
        return bool(getattr(res, "data", False))


__all__ = ["SupabaseProfilesRepo", "PROFILES_TABLE", "utc_now_iso"]
