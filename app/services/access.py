"""
app/services/access.py

Role-based section access.

The authorization context is resolved once per request and passed in
explicitly; metric computation never consults it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"


class Section(str, enum.Enum):
    DASHBOARD = "dashboard"
    ANALYTICS = "analytics"
    UPLOAD = "upload"
    REPORTS = "reports"
    TEAM = "team"
    SETTINGS = "settings"
    USER_MANAGEMENT = "user_management"


_USER_SECTIONS: frozenset[Section] = frozenset({Section.DASHBOARD, Section.ANALYTICS})


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: Role | None


def has_access(context: AuthContext | None, section: Section | str) -> bool:
    """
    True when *context* may open *section*; unknown roles and sections deny.
    """

    if context is None or context.role is None:
        return False
    try:
        section = Section(section)
    except ValueError:
        return False

    if context.role is Role.SUPER_ADMIN:
        return True
    if context.role is Role.ADMIN:
        return section is not Section.USER_MANAGEMENT
    if context.role is Role.USER:
        return section in _USER_SECTIONS
    return False
