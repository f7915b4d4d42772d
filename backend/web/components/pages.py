"""
Page bodies for the StudyCore status, dashboard, admin and debug pages.

Each component renders only the content column; routes wrap it in `Layout`.
"""

from typing import Any, Dict, List, Mapping, Optional

from backend.identity_access.domain import Identity
from backend.profiles.models import Profile

from .base import Component
from .cards import TutorLevelCard
from .forms import ActionForm, SubmitButton, TextInputField


def _fmt_ts(value: Any) -> str:
    if value is None or value == "":
        return "-"
    text = value.isoformat() if hasattr(value, "isoformat") else str(value)
    return text.replace("T", " ")[:16]


class PageHeader(Component):
    def __init__(self, title: str, subtitle: Optional[str] = None):
        self.title = title
        self.subtitle = subtitle

    def render(self) -> str:
        sub = f'<p class="text-muted">{self.escape(self.subtitle)}</p>' if self.subtitle else ""
        return f'<div class="page-header"><h1>{self.escape(self.title)}</h1>{sub}</div>'


class VerifyEmailPage(Component):
    """Instructions plus a resend form; `verified` marks the return from the mail link."""

    def __init__(self, *, email: str = "", verified: bool = False, signed_in: bool = False):
        self.email = email
        self.verified = verified
        self.signed_in = signed_in

    def render(self) -> str:
        if self.verified:
            body = (
                '<p class="card-text">Your email address has been verified.</p>'
                f'<p><a class="btn btn-primary" href="{"/setup-profile" if self.signed_in else "/auth/login"}">Continue</a></p>'
            )
        else:
            target = (
                f" to <strong>{self.escape(self.email)}</strong>" if self.email else ""
            )
            if self.email:
                email_input = f'<input type="hidden" name="email" value="{self.escape(self.email)}">'
            else:
                email_input = TextInputField("email", "Email", required=True).render(
                    input_type="email", autocomplete="email", class_="form-input"
                )
            body = (
                f'<p class="card-text">We sent a verification link{target}. '
                "Open it to activate your account, then come back here.</p>"
                '<form method="post" action="/verify-email" class="inline-form">'
                f"{email_input}"
                f'{SubmitButton("Resend verification email", loading_label="Sending...").render()}'
                "</form>"
            )
        return (
            PageHeader("Verify your email").render()
            + f'<section class="card">{body}</section>'
        )


class PendingApprovalPage(Component):
    def __init__(self, profile: Optional[Profile]):
        self.profile = profile

    def render(self) -> str:
        details = ""
        if self.profile is not None:
            p = self.profile
            bio = f"<dt>Bio</dt><dd>{self.escape(p.bio)}</dd>" if p.bio else ""
            details = (
                '<dl class="profile-details">'
                f"<dt>Name</dt><dd>{self.escape(p.full_name)}</dd>"
                f"<dt>Email</dt><dd>{self.escape(p.email)}</dd>"
                f"<dt>Role</dt><dd>{self.escape(p.role.value.capitalize())}</dd>"
                f"<dt>Registered</dt><dd>{self.escape(_fmt_ts(p.created_at))}</dd>"
                f"{bio}"
                "</dl>"
            )
        steps = (
            '<ol class="next-steps">'
            "<li><strong>Administrator review.</strong> An administrator checks your profile.</li>"
            "<li><strong>Approval.</strong> Once approved, this page forwards you to your dashboard.</li>"
            "<li><strong>Full access.</strong> Classes, schedules and messages become available.</li>"
            "</ol>"
        )
        return (
            PageHeader("Account pending approval", "Your account is waiting for an administrator.").render()
            + f'<section class="card">{details}</section>'
            + f'<section class="card"><h2 class="card-title">What happens next?</h2>{steps}</section>'
        )


class AuthStatusPage(Component):
    """Diagnostics of the current session (no tokens are shown)."""

    def __init__(self, *, user: Optional[Identity], profile: Optional[Profile], session_expires_at: Optional[int]):
        self.user = user
        self.profile = profile
        self.session_expires_at = session_expires_at

    @staticmethod
    def _row(label: str, value: Any) -> str:
        return f"<dt>{Component.escape(label)}</dt><dd>{Component.escape(str(value))}</dd>"

    def render(self) -> str:
        if self.user is None:
            user_html = '<p class="card-text">Not signed in.</p><p><a href="/auth/login">Sign in</a></p>'
        else:
            user_html = "<dl>" + "".join(
                [
                    self._row("User id", self.user.id),
                    self._row("Email", self.user.email),
                    self._row("Email verified", "yes" if self.user.email_verified else "no"),
                    self._row("Role (registration)", self.user.role_hint.value if self.user.role_hint else "-"),
                    self._row("Session expires", self.session_expires_at or "-"),
                ]
            ) + "</dl>"
        if self.profile is None:
            profile_html = '<p class="card-text">No profile found.</p>'
        else:
            p = self.profile
            profile_html = "<dl>" + "".join(
                [
                    self._row("Full name", p.full_name or "-"),
                    self._row("Role", p.role.value),
                    self._row("Approved", "yes" if p.approved else "no"),
                    self._row("Profile complete", "yes" if p.is_complete else "no"),
                    self._row("Updated", _fmt_ts(p.updated_at)),
                ]
            ) + "</dl>"
        actions = (
            '<p class="actions">'
            '<a class="btn" href="/dashboard">Dashboard</a> '
            '<a class="btn" href="/setup-profile">Profile setup</a> '
            '<a class="btn btn-danger" href="/clear-data">Clear session data</a>'
            "</p>"
        )
        return (
            PageHeader("Authentication status").render()
            + f'<section class="card"><h2 class="card-title">User</h2>{user_html}</section>'
            + f'<section class="card"><h2 class="card-title">Profile</h2>{profile_html}</section>'
            + f'<section class="card"><h2 class="card-title">Actions</h2>{actions}</section>'
        )


class DashboardPage(Component):
    def __init__(self, profile: Profile, *, pending_count: Optional[int] = None):
        self.profile = profile
        self.pending_count = pending_count

    def render(self) -> str:
        p = self.profile
        parts = [PageHeader(f"Welcome, {p.full_name}", f"{p.role.value.capitalize()} dashboard").render()]
        if p.role.value == "tutor":
            parts.append(TutorLevelCard(p.completed_classes).render())
        if p.is_admin:
            count = self.pending_count or 0
            parts.append(
                '<section class="card">'
                '<h2 class="card-title">Approvals</h2>'
                f'<p class="card-text">{count} account(s) waiting for approval.</p>'
                '<p><a class="btn btn-primary" href="/admin/approvals">Review approvals</a></p>'
                "</section>"
            )
        if p.bio:
            parts.append(
                f'<section class="card"><h2 class="card-title">About you</h2><p>{self.escape(p.bio)}</p></section>'
            )
        return "".join(parts)


class ApprovalsPage(Component):
    def __init__(self, *, pending: List[Mapping[str, Any]], recent: List[Mapping[str, Any]], error: Optional[str] = None):
        self.pending = pending
        self.recent = recent
        self.error = error

    def _pending_row(self, row: Mapping[str, Any]) -> str:
        base = f"/admin/approvals/{row.get('user_id') or ''}"
        verified = "yes" if row.get("email_confirmed_at") else "no"
        return (
            "<tr>"
            f"<td>{self.escape(row.get('full_name') or '-')}</td>"
            f"<td>{self.escape(row.get('email') or '')}</td>"
            f"<td>{self.escape(str(row.get('role') or ''))}</td>"
            f"<td>{verified}</td>"
            f"<td>{self.escape(_fmt_ts(row.get('created_at')))}</td>"
            '<td class="actions">'
            + ActionForm(f"{base}/approve", "Approve", variant="primary").render()
            + ActionForm(f"{base}/reject", "Reject", variant="danger").render()
            + "</td></tr>"
        )

    def _recent_row(self, row: Mapping[str, Any]) -> str:
        return (
            "<tr>"
            f"<td>{self.escape(row.get('full_name') or '-')}</td>"
            f"<td>{self.escape(row.get('email') or '')}</td>"
            f"<td>{self.escape(str(row.get('role') or ''))}</td>"
            f"<td>{self.escape(_fmt_ts(row.get('approved_at')))}</td>"
            f"<td>{self.escape(row.get('approved_by_name') or '-')}</td>"
            "</tr>"
        )

    def render(self) -> str:
        error_html = f'<div class="form-error" role="alert">{self.escape(self.error)}</div>' if self.error else ""
        if self.pending:
            pending_html = (
                '<table class="table"><thead><tr><th>Name</th><th>Email</th><th>Role</th>'
                "<th>Verified</th><th>Registered</th><th></th></tr></thead><tbody>"
                + "".join(self._pending_row(r) for r in self.pending)
                + "</tbody></table>"
            )
        else:
            pending_html = '<p class="card-text">No pending approvals.</p>'
        if self.recent:
            recent_html = (
                '<table class="table"><thead><tr><th>Name</th><th>Email</th><th>Role</th>'
                "<th>Approved</th><th>By</th></tr></thead><tbody>"
                + "".join(self._recent_row(r) for r in self.recent)
                + "</tbody></table>"
            )
        else:
            recent_html = '<p class="card-text">No approvals in the last 30 days.</p>'
        return (
            PageHeader("User approvals").render()
            + error_html
            + f'<section class="card" id="pending-approvals"><h2 class="card-title">Pending ({len(self.pending)})</h2>{pending_html}</section>'
            + f'<section class="card" id="recent-approvals"><h2 class="card-title">Recently approved</h2>{recent_html}</section>'
        )


FLAG_LABELS: Dict[str, str] = {
    "enable_test_data": "Create test data for new users",
    "verbose_db_logging": "Log every profile database call",
    "log_auth_events": "Log sign-in, sign-up and sign-out events",
    "use_test_database": "Use the test database (applies after restart)",
}


class DebugPage(Component):
    def __init__(
        self,
        *,
        flags: Mapping[str, bool],
        wipe_enabled: bool,
        seed_enabled: bool = False,
        result: Optional[str] = None,
    ):
        self.flags = flags
        self.wipe_enabled = wipe_enabled
        self.seed_enabled = seed_enabled
        self.result = result

    def _flag_row(self, name: str, value: bool) -> str:
        label = FLAG_LABELS.get(name, name)
        state = "on" if value else "off"
        toggle = ActionForm(
            "/debug/flags",
            "Disable" if value else "Enable",
            hidden={"flag": name, "value": "false" if value else "true"},
        )
        return (
            "<tr>"
            f"<td><code>{self.escape(name)}</code></td>"
            f"<td>{self.escape(label)}</td>"
            f'<td class="flag-state flag-state--{state}">{state}</td>'
            f"<td>{toggle.render()}</td>"
            "</tr>"
        )

    def _seed_html(self) -> str:
        if not self.seed_enabled:
            return '<p class="card-text">Turn on <code>enable_test_data</code> to create sample classes.</p>'
        user_field = TextInputField("user_id", "User id", required=True).render(class_="form-input")
        return (
            '<p class="card-text">Creates sample classes for a tutor, or enrollments for a student, '
            "when the user has none yet.</p>"
            + ActionForm("/debug/seed", "Create test data", variant="primary", extra=user_field).render()
        )

    def _wipe_html(self) -> str:
        if not self.wipe_enabled:
            return '<p class="card-text">Data wipe is disabled for this installation.</p>'
        confirm = '<label><input type="checkbox" name="confirm" value="yes" required> I understand</label> '
        return (
            '<p class="card-text">Deletes ALL classes, enrollments, schedules, assignments, '
            "resources, messages and submissions. Profiles are kept.</p>"
            + ActionForm("/debug/wipe", "Delete all test data", variant="danger", extra=confirm).render()
        )

    def render(self) -> str:
        rows = "".join(self._flag_row(name, value) for name, value in self.flags.items())
        flags_html = (
            '<table class="table"><thead><tr><th>Flag</th><th>Description</th><th>State</th><th></th></tr></thead>'
            f"<tbody>{rows}</tbody></table>"
            + ActionForm("/debug/reset", "Reset to defaults").render()
        )
        result_html = f'<p class="card-text">{self.escape(self.result)}</p>' if self.result else ""
        return (
            PageHeader("Debug settings").render()
            + f'<section class="card"><h2 class="card-title">Flags</h2>{flags_html}</section>'
            + f'<section class="card"><h2 class="card-title">Test data</h2>{self._seed_html()}{self._wipe_html()}{result_html}</section>'
        )


class ClearDataPage(Component):
    def __init__(self, *, cleared: bool = False):
        self.cleared = cleared

    def render(self) -> str:
        if self.cleared:
            body = (
                '<p class="card-text">Your session and debug cookies have been removed.</p>'
                '<p><a class="btn btn-primary" href="/auth/login">Sign in again</a></p>'
            )
        else:
            body = (
                '<p class="card-text">Signs you out and removes the session and debug cookies '
                "stored for this site. Use it when sign-in gets stuck.</p>"
                + ActionForm("/clear-data", "Clear session data", variant="danger").render()
            )
        return PageHeader("Clear session data").render() + f'<section class="card">{body}</section>'
