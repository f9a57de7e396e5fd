"""
Static delegation table.

Each role maps to the roles it may hand work to. The table is a strict
partial order: no role reaches itself or anything above it, and the leaf
roles delegate to nobody. Every function here is pure.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar

DELEGATION_MAP: dict[str, frozenset[str]] = {
    "CEO": frozenset(
        {"Project Manager", "Team Lead", "Employee", "Intern", "Contractor"}
    ),
    "Project Manager": frozenset({"Team Lead", "Employee", "Intern", "Contractor"}),
    "Team Lead": frozenset({"Employee", "Intern", "Contractor"}),
    "Employee": frozenset(),
    "Intern": frozenset(),
    "Contractor": frozenset(),
}


class HasRole(Protocol):
    role: str


RoleHolder = TypeVar("RoleHolder", bound=HasRole)


def delegable_roles(source_role: str) -> frozenset[str]:
    """Roles ``source_role`` may delegate to; unknown roles get the empty set."""
    return DELEGATION_MAP.get(source_role, frozenset())


def can_delegate(source_role: str, target_role: str) -> bool:
    return target_role in delegable_roles(source_role)


def filter_delegable(users: Iterable[RoleHolder], source_role: str) -> list[RoleHolder]:
    """Keep only the users whose role ``source_role`` may delegate to, in input order."""
    allowed = delegable_roles(source_role)
    return [user for user in users if user.role in allowed]


def has_creation_rights(role: str) -> bool:
    """Only roles that can hand work to someone may create top-level tasks."""
    return bool(delegable_roles(role))
