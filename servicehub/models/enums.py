"""
Shared Enumerations for ServiceHub Models.

StrEnum values compare equal to their string equivalents, so the wire
value ``"profissional"`` and ``AppMode.PROFESSIONAL`` are interchangeable.
"""

from __future__ import annotations

from enum import StrEnum


class AppMode(StrEnum):
    """Which role's UI the app renders for the logged-in account.

    A display concern only: the server enforces what a professional may
    do, so switching mode locally never grants anything.
    """

    CLIENT = "cliente"
    PROFESSIONAL = "profissional"


class ModeSwitchOutcome(StrEnum):
    """Result of a user-initiated mode toggle."""

    SWITCHED = "SWITCHED"
    UNCHANGED = "UNCHANGED"
    PROFILE_REQUIRED = "PROFILE_REQUIRED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
