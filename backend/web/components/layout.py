"""
Layout Component for StudyCore

Main layout wrapper that combines navigation, flash notices and page content
into a complete HTML document.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from .base import Component
from .flash import FlashMessages
from .navigation import Navigation


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        user: Optional[Dict[str, Any]] = None,
        show_nav: bool = True,
        current_path: str = "/",
        flashes: Optional[Iterable[Tuple[str, str]]] = None,
        refresh: Optional[Tuple[str, float]] = None,
        pending_count: Optional[int] = None,
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            user: Current user dict (optional)
            show_nav: Whether to show navigation (default: True)
            current_path: Current URL path for active navigation highlighting
            flashes: (level, message) notices to show above the content
            refresh: (target, delay_seconds) for a delayed navigation
            pending_count: Pending approvals badge (admins only)
        """
        self.title = title
        self.content = content
        self.user = user
        self.show_nav = show_nav
        self.current_path = current_path
        self.flashes = list(flashes or [])
        self.refresh = refresh
        self.pending_count = pending_count

    def render(self) -> str:
        """Render the complete HTML document."""
        nav_html = (
            Navigation(self.user, self.current_path, self.pending_count).render() if self.show_nav else ""
        )
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head()}
</head>
<body>
    <a href="#main-content" class="skip-link">Skip to main content</a>
    {nav_html}
    <main id="main-content" class="main-content" role="main">
        {self._render_main_inner()}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return only the children of `<main>` for HTMX swaps."""
        return self._render_main_inner()

    def _render_refresh(self) -> str:
        if not self.refresh:
            return ""
        target, delay = self.refresh
        # Whole seconds only; browsers ignore fractional refresh values.
        seconds = max(0, int(round(delay)))
        content = self.escape(f"{seconds};url={target}")
        return f'<meta http-equiv="refresh" content="{content}">'

    def _render_head(self) -> str:
        """Render the HTML head section"""
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="description" content="StudyCore - tutoring platform">
    {self._render_refresh()}
    <title>{self.escape(self.title)} - StudyCore</title>
    <link rel="stylesheet" href="/static/css/studycore.css?v=1">
    """

    def _render_redirect_note(self) -> str:
        if not self.refresh:
            return ""
        target = self.escape(self.refresh[0])
        return (
            f'<p class="redirect-note" data-redirect="{target}">'
            f'Redirecting&hellip; <a href="{target}">Continue</a></p>'
        )

    def _render_main_inner(self) -> str:
        return f"""
        {FlashMessages(self.flashes).render()}
        {self.content}
        {self._render_redirect_note()}
        <footer class="content-footer" role="contentinfo">
            <p class="text-center text-muted">StudyCore</p>
        </footer>
        """
