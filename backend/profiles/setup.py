"""
Profile setup use case: validated form in, one profile write out.

Flow per submission (default `check_then_write` mode):
    1. Point lookup of the profile by `user_id`.
    2. Existing row: update `full_name`, `bio`, `updated_at`.
       No row: insert with the identity's role hint (or student) and email.
    3. Success: success notice and a delayed navigation to the dashboard.
       Failure: failure notice; the form becomes editable again.

The lookup and the write are awaited in order; there is no atomicity between
them. `insert_or_update` mode delegates that to the unique `user_id`
constraint instead.

A second submission for the same user while the first is in flight is a
no-op. The in-flight entry is released on every exit path, cancellation
included, so a saved profile can be edited again with the next submission.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol
import logging

from backend.identity_access.domain import Identity, Role

from .errors import ProfileLookupError, ProfileWriteError
from .gate import DASHBOARD_PATH
from .models import Profile, ProfileForm
from .ports import Navigator, Notifier


logger = logging.getLogger("studycore.profiles")

REDIRECT_DELAY_SECONDS = 1.0
SUCCESS_MESSAGE = "Profile updated successfully!"
FAILURE_MESSAGE = "Failed to update profile"

MODE_CHECK_THEN_WRITE = "check_then_write"
MODE_INSERT_OR_UPDATE = "insert_or_update"
UPSERT_MODES = frozenset({MODE_CHECK_THEN_WRITE, MODE_INSERT_OR_UPDATE})


class ProfilesRepoProtocol(Protocol):
    async def find_by_user_id(self, user_id: str) -> Optional[Profile]:
        ...

    async def update_by_user_id(self, user_id: str, *, full_name: str, bio: Optional[str]) -> None:
        ...

    async def insert(self, *, user_id: str, email: str, full_name: str, bio: Optional[str], role: str) -> None:
        ...

    async def insert_or_update(
        self, *, user_id: str, email: str, full_name: str, bio: Optional[str], role: str
    ) -> str:
        ...


class SetupState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    REDIRECTING = "redirecting"


class InvalidTransition(RuntimeError):
    """Raised when the setup form state machine is driven out of order."""

    def __init__(self, current: SetupState, target: SetupState) -> None:
        super().__init__(f"{current.value} -> {target.value}")
        self.current = current
        self.target = target


_ALLOWED = {
    (SetupState.IDLE, SetupState.SUBMITTING),
    (SetupState.SUBMITTING, SetupState.IDLE),
    (SetupState.SUBMITTING, SetupState.REDIRECTING),
}


class SetupStateMachine:
    """UI-visible state of one setup form: idle -> submitting -> idle|redirecting."""

    def __init__(self) -> None:
        self.state = SetupState.IDLE

    def move_to(self, target: SetupState) -> None:
        if (self.state, target) not in _ALLOWED:
            raise InvalidTransition(self.state, target)
        self.state = target

    @property
    def editable(self) -> bool:
        return self.state is SetupState.IDLE


class SubmitStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    state: SetupState
    action: Optional[str] = None  # "inserted" | "updated"

    @property
    def ignored(self) -> bool:
        return self.status is SubmitStatus.IGNORED

    @property
    def succeeded(self) -> bool:
        return self.status is SubmitStatus.SUCCESS


class ProfileSetupService:
    """Application service shared by all requests of one app instance."""

    def __init__(self, repo: ProfilesRepoProtocol, *, mode: str = MODE_CHECK_THEN_WRITE) -> None:
        if mode not in UPSERT_MODES:
            raise ValueError("invalid_upsert_mode")
        self.repo = repo
        self.mode = mode
        # Only submissions in flight are tracked; each one owns its machine.
        self._in_flight: Dict[str, SetupStateMachine] = {}

    def state_for(self, user_id: str) -> SetupState:
        machine = self._in_flight.get(user_id)
        return machine.state if machine else SetupState.IDLE

    def open_form(self, user_id: str) -> SetupStateMachine:
        """The running submission's machine, or a fresh editable one."""
        return self._in_flight.get(user_id) or SetupStateMachine()

    def is_in_flight(self, user_id: str) -> bool:
        return user_id in self._in_flight

    @property
    def tracked_users(self) -> int:
        return len(self._in_flight)

    async def submit(
        self,
        identity: Identity,
        form: ProfileForm,
        *,
        navigator: Navigator,
        notifier: Notifier,
    ) -> SubmitOutcome:
        user_id = identity.id
        if user_id in self._in_flight:
            logger.info("profile submit ignored: already in flight user=%s", user_id)
            return SubmitOutcome(SubmitStatus.IGNORED, SetupState.SUBMITTING)
        # Each submission gets its own form machine.
        machine = SetupStateMachine()
        machine.move_to(SetupState.SUBMITTING)
        self._in_flight[user_id] = machine
        settled = False
        try:
            action = await self._write(identity, form)
        except (ProfileLookupError, ProfileWriteError) as exc:
            logger.warning("profile submit failed: %s user=%s", exc.__class__.__name__, user_id)
            machine.move_to(SetupState.IDLE)
            settled = True
            notifier.error(FAILURE_MESSAGE)
            return SubmitOutcome(SubmitStatus.FAILURE, machine.state)
        else:
            machine.move_to(SetupState.REDIRECTING)
            settled = True
        finally:
            self._in_flight.pop(user_id, None)
            # Cancelled or crashed submissions leave the form editable.
            if not settled:
                machine.state = SetupState.IDLE
        logger.info("profile %s user=%s", action, user_id)
        notifier.success(SUCCESS_MESSAGE)
        navigator.navigate(DASHBOARD_PATH, delay=REDIRECT_DELAY_SECONDS)
        return SubmitOutcome(SubmitStatus.SUCCESS, machine.state, action=action)

    async def _write(self, identity: Identity, form: ProfileForm) -> str:
        role = (identity.role_hint or Role.STUDENT).value
        if self.mode == MODE_INSERT_OR_UPDATE:
            return await self.repo.insert_or_update(
                user_id=identity.id,
                email=identity.email,
                full_name=form.full_name,
                bio=form.bio,
                role=role,
            )
        existing = await self.repo.find_by_user_id(identity.id)
        if existing is not None:
            await self.repo.update_by_user_id(identity.id, full_name=form.full_name, bio=form.bio)
            return "updated"
        await self.repo.insert(
            user_id=identity.id,
            email=identity.email,
            full_name=form.full_name,
            bio=form.bio,
            role=role,
        )
        return "inserted"


__all__ = [
    "FAILURE_MESSAGE",
    "InvalidTransition",
    "MODE_CHECK_THEN_WRITE",
    "MODE_INSERT_OR_UPDATE",
    "ProfileSetupService",
    "ProfilesRepoProtocol",
    "REDIRECT_DELAY_SECONDS",
    "SUCCESS_MESSAGE",
    "SetupState",
    "SetupStateMachine",
    "SubmitOutcome",
    "SubmitStatus",
    "UPSERT_MODES",
]
