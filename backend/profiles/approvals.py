"""
Admin approval queue.

New student and tutor profiles start unapproved; an admin approves or
rejects them. The `approve_user`/`reject_user` database functions check the
caller's admin role themselves, so the repository passed in per call must be
bound to the admin's access token rather than the Service Role key.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from .errors import ProfileLookupError, ProfileWriteError
from .repo_supabase import SupabaseProfilesRepo


logger = logging.getLogger("studycore.profiles")

UserRepoFactory = Callable[[str], Awaitable[SupabaseProfilesRepo]]


@dataclass(frozen=True)
class ApprovalResult:
    success: bool
    error: Optional[str] = None


class ApprovalsService:
    def __init__(self, repo: SupabaseProfilesRepo, user_repo_factory: UserRepoFactory) -> None:
        self.repo = repo
        self._user_repo_factory = user_repo_factory

    async def pending(self) -> List[Dict[str, Any]]:
        return await self.repo.list_pending()

    async def recent(self) -> List[Dict[str, Any]]:
        return await self.repo.list_recent_approvals()

    async def pending_count(self) -> int:
        """Count of unapproved student/tutor profiles; 0 when the read fails."""
        try:
            return await self.repo.count_pending()
        except ProfileLookupError:
            return 0

    async def approve_user(self, access_token: str, user_id: str) -> ApprovalResult:
        return await self._decide("approve", access_token, user_id)

    async def reject_user(self, access_token: str, user_id: str) -> ApprovalResult:
        return await self._decide("reject", access_token, user_id)

    async def _decide(self, op: str, access_token: str, user_id: str) -> ApprovalResult:
        repo = await self._user_repo_factory(access_token)
        try:
            found = await (repo.approve(user_id) if op == "approve" else repo.reject(user_id))
        except ProfileWriteError:
            return ApprovalResult(False, error=f"{op}_failed")
        if not found:
            return ApprovalResult(False, error="user_not_found")
        logger.info("profile %s user=%s", "approved" if op == "approve" else "rejected", user_id)
        return ApprovalResult(True)


__all__ = ["ApprovalResult", "ApprovalsService"]
