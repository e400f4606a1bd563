"""
peopleguard.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
- Define the role names understood by RBAC checks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    admin = "Admin"
    business = "Business"
    er = "ER"
    hr = "HR"
    it_admin = "ITAdmin"
    management = "Management"
    manager = "Manager"


ALL_ROLES: tuple[str, ...] = tuple(r.value for r in Role)


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    subject: str
    name: str
    email: str
    roles: frozenset[str]

    def has_any(self, roles: frozenset[str]) -> bool:
        return not roles.isdisjoint(self.roles)


# --- Module Notes -----------------------------------------------------------
# `subject` is the user id (JWT `sub`); services record it as `created_by`/`user_id`.
