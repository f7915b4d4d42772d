"""
Sign-in, registration and password reset forms.
"""
from typing import Dict, Optional

from ..base import Component
from .fields import RadioGroupField, TextInputField
from .submit import SubmitButton


ROLE_OPTIONS = (("student", "I want to learn (student)"), ("tutor", "I want to teach (tutor)"))


def _error_banner(component: Component, error: Optional[str]) -> str:
    if not error:
        return ""
    return f'<div class="form-error" role="alert">{component.escape(error)}</div>'


class SignInForm(Component):
    def __init__(self, *, values: Optional[Dict[str, str]] = None, error: Optional[str] = None):
        self.values = values or {}
        self.error = error

    def render(self) -> str:
        email = TextInputField("email", "Email", required=True).render(
            value=self.values.get("email", ""),
            input_type="email",
            autocomplete="email",
            class_="form-input",
        )
        password = TextInputField("password", "Password", required=True).render(
            input_type="password",
            autocomplete="current-password",
            class_="form-input",
        )
        return f"""
        <form method="post" action="/auth/login" class="auth-form">
            {email}
            {password}
            {_error_banner(self, self.error)}
            <div class="form-actions">
                {SubmitButton("Sign in", loading_label="Signing in...").render()}
            </div>
            <p class="form-footnote">No account yet? <a href="/auth/register">Register</a></p>
            <p class="form-footnote"><a href="/auth/reset-password">Forgot your password?</a></p>
        </form>
        """


class RegisterForm(Component):
    """Registration with a self-service role choice (student or tutor)."""

    def __init__(
        self,
        *,
        values: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[str, str]] = None,
        error: Optional[str] = None,
    ):
        self.values = values or {}
        self.errors = errors or {}
        self.error = error

    def render(self) -> str:
        email = TextInputField("email", "Email", required=True, error_text=self.errors.get("email")).render(
            value=self.values.get("email", ""),
            input_type="email",
            autocomplete="email",
            class_="form-input",
        )
        password = TextInputField(
            "password",
            "Password",
            required=True,
            help_text="At least 6 characters.",
            error_text=self.errors.get("password"),
        ).render(input_type="password", autocomplete="new-password", class_="form-input")
        role = RadioGroupField("role", "I am joining as", required=True, error_text=self.errors.get("role")).render(
            options=ROLE_OPTIONS,
            value=self.values.get("role", "student"),
        )
        return f"""
        <form method="post" action="/auth/register" class="auth-form">
            {email}
            {password}
            {role}
            {_error_banner(self, self.error)}
            <div class="form-actions">
                {SubmitButton("Create account", loading_label="Creating account...").render()}
            </div>
            <p class="form-footnote">Already registered? <a href="/auth/login">Sign in</a></p>
        </form>
        """


class ResetPasswordForm(Component):
    """Request a recovery link; after sending, only the confirmation is shown."""

    def __init__(self, *, email: str = "", error: Optional[str] = None, sent: bool = False):
        self.email = email
        self.error = error
        self.sent = sent

    def render(self) -> str:
        if self.sent:
            return f"""
        <div class="auth-form">
            <p class="card-text">If an account exists for <strong>{self.escape(self.email)}</strong>,
            a password reset link is on its way. Please check your email.</p>
            <p class="form-footnote"><a href="/auth/login">Back to sign in</a></p>
        </div>
        """
        email = TextInputField("email", "Email", required=True).render(
            value=self.email,
            input_type="email",
            autocomplete="email",
            class_="form-input",
        )
        return f"""
        <form method="post" action="/auth/reset-password" class="auth-form">
            {email}
            {_error_banner(self, self.error)}
            <div class="form-actions">
                {SubmitButton("Send reset link", loading_label="Sending...").render()}
            </div>
            <p class="form-footnote"><a href="/auth/login">Back to sign in</a></p>
        </form>
        """


class NewPasswordForm(Component):
    def __init__(self, *, errors: Optional[Dict[str, str]] = None, error: Optional[str] = None):
        self.errors = errors or {}
        self.error = error

    def render(self) -> str:
        password = TextInputField(
            "password",
            "New password",
            required=True,
            help_text="At least 6 characters.",
            error_text=self.errors.get("password"),
        ).render(input_type="password", autocomplete="new-password", class_="form-input")
        confirm = TextInputField(
            "confirm_password",
            "Confirm new password",
            required=True,
            error_text=self.errors.get("confirm_password"),
        ).render(input_type="password", autocomplete="new-password", class_="form-input")
        return f"""
        <form method="post" action="/auth/reset-password/confirm" class="auth-form">
            {password}
            {confirm}
            {_error_banner(self, self.error)}
            <div class="form-actions">
                {SubmitButton("Update password", loading_label="Updating...").render()}
            </div>
        </form>
        """
