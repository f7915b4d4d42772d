"""
Buttons that submit forms.

`SubmitButton` closes the larger forms (sign in, profile setup). Admin and
debug screens use `ActionForm`: a one-button POST form whose only payload is
a few hidden fields.
"""

from typing import Mapping, Optional

from ..base import Component


VARIANTS = {
    "primary": "btn btn-primary",
    "danger": "btn btn-danger",
    "plain": "btn",
    "link": "btn btn-link",
}


class SubmitButton(Component):
    def __init__(
        self,
        label: str,
        *,
        variant: str = "primary",
        loading_label: str = "Saving...",
        is_loading: bool = False,
        disabled: bool = False,
    ) -> None:
        if variant not in VARIANTS:
            raise ValueError(f"unknown button variant: {variant}")
        self.label = label
        self.variant = variant
        self.loading_label = loading_label
        self.is_loading = is_loading
        self.disabled = disabled

    def render(self) -> str:
        # A busy button shows its loading label and cannot be pressed again.
        label = self.loading_label if self.is_loading else self.label
        attrs = self.attributes(
            type="submit",
            class_=VARIANTS[self.variant],
            disabled=self.disabled or self.is_loading,
            aria_busy="true" if self.is_loading else None,
        )
        return f"<button {attrs}>{self.escape(label)}</button>"


class ActionForm(Component):
    """Inline POST form with hidden fields and a single button."""

    def __init__(
        self,
        action: str,
        label: str,
        *,
        variant: str = "plain",
        hidden: Optional[Mapping[str, str]] = None,
        extra: str = "",
    ) -> None:
        self.action = action
        self.button = SubmitButton(label, variant=variant)
        self.hidden = hidden or {}
        self.extra = extra

    def render(self) -> str:
        fields = "".join(
            f"<input {self.attributes(type='hidden', name=name, value=value)}>" for name, value in self.hidden.items()
        )
        return (
            f'<form {self.attributes(method="post", action=self.action, class_="inline-form")}>'
            f"{fields}{self.extra}{self.button.render()}</form>"
        )
