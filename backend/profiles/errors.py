"""Errors raised by the profile adapters and services."""
from __future__ import annotations

from typing import Optional


UNIQUE_VIOLATION = "23505"


class ProfileLookupError(RuntimeError):
    """The existence check (or any profile read) failed."""


class ProfileWriteError(RuntimeError):
    """An insert or update was rejected by the database."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION


__all__ = ["ProfileLookupError", "ProfileWriteError", "UNIQUE_VIOLATION"]
