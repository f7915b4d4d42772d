"""
Navigation Component for StudyCore

Role-based top navigation. Signed-out visitors see sign in/register links;
admins additionally see the approval queue (with a pending badge) and the
debug page.
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import Component


NavItem = Tuple[str, str]

ROLE_LABELS = {"student": "Student", "tutor": "Tutor", "admin": "Admin"}


class Navigation(Component):
    """Navigation bar with role-based menu items"""

    def __init__(
        self,
        user: Optional[Dict[str, Any]] = None,
        current_path: str = "/",
        pending_count: Optional[int] = None,
    ):
        """
        Args:
            user: Dict with 'name', 'email' and 'role' keys (optional)
            current_path: Current URL path for active link highlighting
            pending_count: Pending approvals badge for admins
        """
        self.user = user
        self.current_path = current_path
        self.pending_count = pending_count

    def _items(self) -> List[NavItem]:
        if not self.user:
            return [("/auth/login", "Sign in"), ("/auth/register", "Register")]
        items: List[NavItem] = [("/dashboard", "Dashboard"), ("/auth-status", "Account")]
        if self.user.get("role") == "admin":
            items.append(("/admin/approvals", "Approvals"))
            items.append(("/debug", "Debug"))
        return items

    def _render_item(self, href: str, label: str) -> str:
        active = self.current_path == href or self.current_path.startswith(href + "/")
        attrs = self.attributes(
            href=href,
            class_=self.classes("nav-link", active=active),
            aria_current="page" if active else None,
        )
        badge = ""
        if href == "/admin/approvals" and self.pending_count:
            badge = f' <span class="badge" aria-label="pending approvals">{int(self.pending_count)}</span>'
        return f"<a {attrs}>{self.escape(label)}{badge}</a>"

    def render(self) -> str:
        links = "".join(self._render_item(href, label) for href, label in self._items())
        user_html = ""
        if self.user:
            name = self.user.get("name") or self.user.get("email") or ""
            role = ROLE_LABELS.get(str(self.user.get("role") or ""), "")
            user_html = (
                '<div class="nav-user">'
                f'<span class="user-name">{self.escape(name)}</span>'
                f'<span class="user-role">{self.escape(role)}</span>'
                '<form method="post" action="/auth/logout" class="nav-logout">'
                '<button type="submit" class="btn btn-link">Sign out</button>'
                "</form>"
                "</div>"
            )
        return (
            '<header class="topbar">'
            '<a class="brand" href="/dashboard">StudyCore</a>'
            f'<nav class="topbar-nav" role="navigation" aria-label="Main navigation">{links}</nav>'
            f"{user_html}"
            "</header>"
        )
