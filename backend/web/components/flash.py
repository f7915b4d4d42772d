"""Flash notices shown at the top of the next rendered page."""

from typing import Iterable, Tuple

from .base import Component


_LEVEL_CLASS = {
    "success": "flash flash--success",
    "error": "flash flash--error",
    "info": "flash flash--info",
}


class FlashMessages(Component):
    def __init__(self, flashes: Iterable[Tuple[str, str]]):
        self.flashes = list(flashes)

    def render(self) -> str:
        if not self.flashes:
            return ""
        items = []
        for level, message in self.flashes:
            css = _LEVEL_CLASS.get(level, _LEVEL_CLASS["info"])
            role = "alert" if level == "error" else "status"
            items.append(f'<div class="{css}" role="{role}">{self.escape(message)}</div>')
        return f'<div class="flash-stack" id="flash-stack">{"".join(items)}</div>'
