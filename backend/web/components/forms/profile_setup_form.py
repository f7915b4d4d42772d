"""
Profile Setup Form Component
"""
from typing import Dict, Optional

from ..base import Component
from .fields import TextAreaField, TextInputField
from .submit import SubmitButton


class ProfileSetupForm(Component):
    """
    Form for completing (or editing) the user's profile: full name and an
    optional bio. Field errors come from the server-side validation and are
    shown inline; save failures arrive as flash notices. `submitting` disables
    the form while a save is running.
    """

    def __init__(
        self,
        *,
        email: str = "",
        values: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[str, str]] = None,
        submitting: bool = False,
    ):
        self.email = email
        self.values = values or {}
        self.errors = errors or {}
        self.submitting = submitting

    def render(self) -> str:
        full_name = TextInputField(
            "full_name",
            "Full name",
            required=True,
            error_text=self.errors.get("full_name"),
        ).render(
            value=self.values.get("full_name", ""),
            autocomplete="name",
            class_="form-input",
            disabled=self.submitting,
        )
        bio = TextAreaField(
            "bio",
            "Bio",
            help_text="Optional. Tell students or tutors a little about yourself.",
            error_text=self.errors.get("bio"),
        ).render(
            value=self.values.get("bio", ""),
            class_="form-input",
            disabled=self.submitting,
        )
        email_html = ""
        if self.email:
            email_html = f'<p class="form-static">Signed in as <strong>{self.escape(self.email)}</strong></p>'
        submit_btn = SubmitButton("Save profile", is_loading=self.submitting)
        return f"""
        <form method="post" action="/setup-profile" class="profile-setup-form" novalidate>
            {email_html}
            {full_name}
            {bio}
            <div class="form-actions">
                {submit_btn.render()}
            </div>
        </form>
        """
