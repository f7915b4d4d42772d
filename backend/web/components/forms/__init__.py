"""
Form components for StudyCore.

Basic building blocks (fields, submit button) plus the concrete forms used by
the auth and profile pages.
"""

from .fields import FormField, RadioGroupField, TextAreaField, TextInputField
from .submit import ActionForm, SubmitButton
from .auth_forms import NewPasswordForm, RegisterForm, ResetPasswordForm, SignInForm
from .profile_setup_form import ProfileSetupForm

__all__ = [
    "FormField",
    "RadioGroupField",
    "TextAreaField",
    "TextInputField",
    "ActionForm",
    "SubmitButton",
    "NewPasswordForm",
    "RegisterForm",
    "ResetPasswordForm",
    "SignInForm",
    "ProfileSetupForm",
]
