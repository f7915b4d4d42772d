"""
Form field components.

Small wrappers that keep label, input, help and error markup consistent
across the sign-in, registration and profile forms.
"""

from typing import Optional, Sequence, Tuple

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
        state: str = "default",
    ) -> None:
        self.field_id = field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text
        self.state = "error" if error_text and state == "default" else state

    def _describedby(self) -> Optional[str]:
        ids = []
        if self.help_text:
            ids.append(f"{self.field_id}-help")
        if self.error_text:
            ids.append(f"{self.field_id}-error")
        return " ".join(ids) or None

    def render(self, input_html: str) -> str:
        state_class = f" form-field--{self.state}" if self.state != "default" else ""
        required_marker = (
            '<span class="form-required" aria-hidden="true">*</span>'
            if self.required
            else ""
        )
        help_html = (
            f'<p class="form-help" id="{self.field_id}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert" id="{self.field_id}-error">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )

        label_attrs = self.attributes(
            for_=self.field_id,
            class_="form-label",
        )

        return (
            f'<div class="form-field{state_class}">'
            f"<label {label_attrs}>"
            f"{self.escape(self.label)}{required_marker}"
            "</label>"
            f"{input_html}"
            f"{help_html}"
            f"{error_html}"
            "</div>"
        )


class TextAreaField(FormField):
    """Convenience helper for textareas."""

    def render(self, value: Optional[str] = "", rows: int = 4, **attrs: object) -> str:
        textarea_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            rows=str(rows),
            aria_describedby=self._describedby(),
            aria_invalid="true" if self.error_text else "false",
            **attrs,
        )
        input_html = f"<textarea {textarea_attrs}>{self.escape(value)}</textarea>"
        return super().render(input_html)


class TextInputField(FormField):
    """Single-line text input field with consistent wrapper and labeling.

    `input_type` is one of 'text', 'email', 'password'.
    """

    def render(
        self,
        *,
        value: Optional[str] = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        placeholder: Optional[str] = None,
        **attrs: object,
    ) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            type=input_type,
            value=value if input_type != "password" else None,
            autocomplete=autocomplete,
            placeholder=placeholder,
            required=self.required,
            aria_describedby=self._describedby(),
            aria_invalid="true" if self.error_text else "false",
            **attrs,
        )
        input_html = f"<input {input_attrs}>"
        return super().render(input_html)


class RadioGroupField(FormField):
    """Group of radio buttons sharing one name (e.g. the registration role)."""

    def render(self, *, options: Sequence[Tuple[str, str]], value: Optional[str] = None) -> str:
        items = []
        for option_value, option_label in options:
            option_id = f"{self.field_id}-{option_value}"
            input_attrs = self.attributes(
                id=option_id,
                name=self.field_id,
                type="radio",
                value=option_value,
                checked=option_value == value,
                required=self.required,
            )
            items.append(
                f'<label class="radio-option" for="{self.escape(option_id)}">'
                f"<input {input_attrs}> {self.escape(option_label)}</label>"
            )
        return super().render(f'<div class="radio-group" role="radiogroup">{"".join(items)}</div>')
