"""
Access gate for /setup-profile and the app-area route guard.

Requirements:
- Decision priority: loading, no identity, completed profile, unverified email.
- Re-evaluating with unchanged inputs never navigates or notifies twice.
- Loading neither acts nor resets the idempotence key.
"""
from __future__ import annotations

import pytest

from backend.identity_access.auth_state import AuthState
from backend.identity_access.domain import Identity, Role
from backend.profiles.gate import (
    AccessGate,
    GateDecision,
    SIGN_IN_NOTICE,
    VERIFY_NOTICE,
    decide,
    guard_admin,
    guard_protected,
)
from backend.profiles.models import Profile


class RecordingNavigator:
    def __init__(self):
        self.calls = []

    def navigate(self, path, *, delay=0.0):
        self.calls.append((path, delay))


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def success(self, message):
        self.calls.append(("success", message))

    def error(self, message):
        self.calls.append(("error", message))

    def info(self, message):
        self.calls.append(("info", message))


VERIFIED = Identity(id="u1", email="ada@example.com", email_verified=True)
UNVERIFIED = Identity(id="u1", email="ada@example.com", email_verified=False)
COMPLETE = Profile(user_id="u1", full_name="Ada Lovelace", approved=True)
BLANK = Profile(user_id="u1", full_name="   ")


@pytest.mark.parametrize(
    "loading,identity,profile,expected",
    [
        (True, None, None, GateDecision.AWAIT_LOADING),
        (True, VERIFIED, COMPLETE, GateDecision.AWAIT_LOADING),
        (False, None, None, GateDecision.REDIRECT_LOGIN),
        (False, None, COMPLETE, GateDecision.REDIRECT_LOGIN),
        (False, VERIFIED, COMPLETE, GateDecision.REDIRECT_DASHBOARD),
        (False, UNVERIFIED, COMPLETE, GateDecision.REDIRECT_DASHBOARD),
        (False, UNVERIFIED, None, GateDecision.REDIRECT_VERIFY),
        (False, UNVERIFIED, BLANK, GateDecision.REDIRECT_VERIFY),
        (False, VERIFIED, None, GateDecision.RENDER_FORM),
        (False, VERIFIED, BLANK, GateDecision.RENDER_FORM),
    ],
)
def test_decide_priority(loading, identity, profile, expected):
    assert decide(loading, identity, profile) is expected


def test_redirect_login_notifies_and_navigates_once():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)

    first = gate.evaluate(False, None, None)
    second = gate.evaluate(False, None, None)

    assert first.navigated_to == "/auth/login"
    assert first.notified == SIGN_IN_NOTICE
    assert second.navigated_to is None
    assert nav.calls == [("/auth/login", 0.0)]
    assert notes.calls == [("error", SIGN_IN_NOTICE)]


def test_signed_out_redirects_once_whatever_the_profile():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)

    gate.evaluate(False, None, None)
    gate.evaluate(False, None, COMPLETE)
    gate.evaluate(False, None, BLANK)

    assert nav.calls == [("/auth/login", 0.0)]
    assert notes.calls == [("error", SIGN_IN_NOTICE)]


def test_completed_profile_redirects_without_notice():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    outcome = AccessGate(nav, notes).evaluate(False, VERIFIED, COMPLETE)
    assert outcome.decision is GateDecision.REDIRECT_DASHBOARD
    assert nav.calls == [("/dashboard", 0.0)]
    assert notes.calls == []


def test_unverified_without_profile_gets_verify_notice():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    AccessGate(nav, notes).evaluate(False, UNVERIFIED, None)
    assert nav.calls == [("/verify-email", 0.0)]
    assert notes.calls == [("error", VERIFY_NOTICE)]


def test_render_form_has_no_side_effects():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    outcome = AccessGate(nav, notes).evaluate(False, VERIFIED, None)
    assert outcome.decision is GateDecision.RENDER_FORM
    assert nav.calls == [] and notes.calls == []


def test_loading_does_not_reset_idempotence_key():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)
    gate.evaluate(False, None, None)
    assert gate.evaluate(True, None, None).decision is GateDecision.AWAIT_LOADING
    gate.evaluate(False, None, None)
    assert len(nav.calls) == 1
    assert len(notes.calls) == 1


def test_changed_inputs_act_again():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)
    gate.evaluate(False, UNVERIFIED, None)
    # Email verified in another tab: the form renders, then a completed
    # profile sends the user on to the dashboard.
    gate.evaluate(False, VERIFIED, None)
    gate.evaluate(False, VERIFIED, COMPLETE)
    assert [c[0] for c in nav.calls] == ["/verify-email", "/dashboard"]


def test_render_form_in_between_allows_repeat_redirect():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)
    gate.evaluate(False, None, None)
    gate.evaluate(False, VERIFIED, None)
    gate.evaluate(False, None, None)
    assert [c[0] for c in nav.calls] == ["/auth/login", "/auth/login"]


def test_reset_forgets_previous_decision():
    nav, notes = RecordingNavigator(), RecordingNotifier()
    gate = AccessGate(nav, notes)
    gate.evaluate(False, None, None)
    gate.reset()
    gate.evaluate(False, None, None)
    assert len(nav.calls) == 2


@pytest.mark.parametrize(
    "state,expected",
    [
        (AuthState(loading=True), None),
        (AuthState(), "/auth/login"),
        (AuthState(user=UNVERIFIED, profile=COMPLETE), "/verify-email"),
        (AuthState(user=VERIFIED), "/setup-profile"),
        (AuthState(user=VERIFIED, profile=BLANK), "/setup-profile"),
        (AuthState(user=VERIFIED, profile=Profile(user_id="u1", full_name="Ada", approved=False)), "/pending-approval"),
        (AuthState(user=VERIFIED, profile=Profile(user_id="u1", full_name="Ada", role=Role.ADMIN)), None),
        (AuthState(user=VERIFIED, profile=COMPLETE), None),
    ],
)
def test_guard_protected(state, expected):
    assert guard_protected(state) == expected


def test_guard_admin():
    admin = Profile(user_id="u1", full_name="Ada", role=Role.ADMIN)
    assert guard_admin(AuthState()) == "/auth/login"
    assert guard_admin(AuthState(user=VERIFIED, profile=COMPLETE)) == "/dashboard"
    assert guard_admin(AuthState(user=VERIFIED, profile=admin)) is None
