"""
Rendering primitives shared by every StudyCore page fragment.

A component holds the data of one fragment and turns it into markup in
`render()`. Anything that came from a user or the database is passed through
`escape` before it lands in the markup.
"""

from typing import Any, Optional
import html


class Component:
    """One server-rendered fragment (form, card, page body)."""

    def render(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} has no markup")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """HTML-escape a value; None becomes ''."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*base: str, **toggles: bool) -> str:
        """Join CSS classes, skipping empty names and false toggles.

            >>> Component.classes("btn", "", "btn-danger", busy=True, hidden=False)
            'btn btn-danger busy'
        """
        names = [name for name in base if name]
        names.extend(name for name, on in toggles.items() if on)
        return " ".join(names)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Serialize keyword arguments into an HTML attribute list.

        `class_`/`for_` lose the trailing underscore, other names map `_` to
        `-` (`aria_busy` -> `aria-busy`). True renders a bare attribute;
        False and None drop it.

            >>> Component.attributes(name="flag", aria_busy="true", required=True, hidden=None)
            'name="flag" aria-busy="true" required'
        """
        parts = []
        for name, value in attrs.items():
            name = name[:-1] if name.endswith("_") else name.replace("_", "-")
            if value is True:
                parts.append(name)
            elif value is not False and value is not None:
                parts.append(f'{name}="{html.escape(str(value))}"')
        return " ".join(parts)
