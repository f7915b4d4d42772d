"""
Side-effect ports used by the access gate and the profile setup service.

The web layer provides the concrete implementations (see
`backend.web.navigation`); tests use simple recorders.
"""
from __future__ import annotations

from typing import Protocol


class Navigator(Protocol):
    def navigate(self, path: str, *, delay: float = 0.0) -> None:
        """Request a navigation to `path`, optionally after `delay` seconds."""
        ...


class Notifier(Protocol):
    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...


__all__ = ["Navigator", "Notifier"]
