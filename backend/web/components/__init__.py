# StudyCore Component System
# Pure Python Components for HTML generation

from .base import Component
from .layout import Layout
from .flash import FlashMessages
from .navigation import Navigation
from .cards import TutorLevelCard
from .forms import (
    FormField,
    RadioGroupField,
    TextAreaField,
    TextInputField,
    ActionForm,
    SubmitButton,
    SignInForm,
    NewPasswordForm,
    RegisterForm,
    ResetPasswordForm,
    ProfileSetupForm,
)

__all__ = [
    "Component",
    "Layout",
    "FlashMessages",
    "Navigation",
    "TutorLevelCard",
    "FormField",
    "RadioGroupField",
    "TextAreaField",
    "TextInputField",
    "ActionForm",
    "SubmitButton",
    "SignInForm",
    "NewPasswordForm",
    "RegisterForm",
    "ResetPasswordForm",
    "ProfileSetupForm",
]
