"""
Delegation table tests.
"""
from __future__ import annotations

from dataclasses import dataclass

import pytest

from taskrelay.core.constants import ROLES
from taskrelay.services.role_hierarchy import (
    DELEGATION_MAP,
    can_delegate,
    delegable_roles,
    filter_delegable,
    has_creation_rights,
)


@dataclass
class Person:
    name: str
    role: str


class TestCanDelegate:
    @pytest.mark.parametrize(
        "source, target",
        [
            ("CEO", "Project Manager"),
            ("CEO", "Contractor"),
            ("Project Manager", "Team Lead"),
            ("Team Lead", "Intern"),
        ],
    )
    def test_downward_delegation_allowed(self, source: str, target: str) -> None:
        assert can_delegate(source, target) is True

    @pytest.mark.parametrize(
        "source, target",
        [
            ("Team Lead", "Project Manager"),
            ("Project Manager", "CEO"),
            ("Employee", "Intern"),
            ("Contractor", "Employee"),
        ],
    )
    def test_upward_or_leaf_delegation_denied(self, source: str, target: str) -> None:
        assert can_delegate(source, target) is False

    @pytest.mark.parametrize("role", ROLES)
    def test_no_role_delegates_to_itself(self, role: str) -> None:
        assert can_delegate(role, role) is False

    def test_unknown_role_delegates_to_nobody(self) -> None:
        assert delegable_roles("Janitor") == frozenset()
        assert can_delegate("Janitor", "Employee") is False

    def test_table_is_acyclic(self) -> None:
        for source, targets in DELEGATION_MAP.items():
            for target in targets:
                assert source not in DELEGATION_MAP[target]


class TestFilterDelegable:
    def test_keeps_reachable_roles_in_order(self) -> None:
        people = [
            Person("a", "Employee"),
            Person("b", "CEO"),
            Person("c", "Intern"),
            Person("d", "Team Lead"),
        ]
        result = filter_delegable(people, "Team Lead")
        assert [p.name for p in result] == ["a", "c"]

    def test_leaf_role_gets_empty_list(self) -> None:
        assert filter_delegable([Person("a", "Intern")], "Employee") == []


class TestCreationRights:
    @pytest.mark.parametrize("role", ["CEO", "Project Manager", "Team Lead"])
    def test_delegating_roles_may_create(self, role: str) -> None:
        assert has_creation_rights(role) is True

    @pytest.mark.parametrize("role", ["Employee", "Intern", "Contractor"])
    def test_leaf_roles_may_not_create(self, role: str) -> None:
        assert has_creation_rights(role) is False
