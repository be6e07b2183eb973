"""Storage interfaces consumed by the policy engine.

The engine reads groups and rule records through these interfaces only.
SQL-backed implementations live in ``groupacl.db.stores``; the in-memory
ones below serve tests and hosts that declare their data in code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional


@dataclass(frozen=True)
class GroupRow:
    """A stored user group."""

    id: Any
    parent_id: Any = None
    title: str = ""


@dataclass(frozen=True)
class RuleRow:
    """A stored rule record. ``rules`` is the raw JSON payload."""

    id: Any
    resource: str
    rules: Any
    parent_id: Any = None


class GroupStore(ABC):
    """Source of user groups."""

    @abstractmethod
    def list_groups(self) -> List[GroupRow]:
        """Return all groups, parents listed before their children."""


class RuleStore(ABC):
    """Source of rule records."""

    @abstractmethod
    def list_rules(self) -> List[RuleRow]:
        """Return every stored rule record."""


class InMemoryGroupStore(GroupStore):
    """Groups held in a list."""

    def __init__(self, groups: Iterable[Any] = ()):
        self._groups = [
            g if isinstance(g, GroupRow) else GroupRow(**g) for g in groups
        ]

    def list_groups(self) -> List[GroupRow]:
        return list(self._groups)


class InMemoryRuleStore(RuleStore):
    """Rule records held in a list.

    Accepts ``RuleRow`` instances, row mappings, or a plain mapping of
    resource name to decoded grants.
    """

    def __init__(self, rules: Optional[Any] = None):
        rows: List[RuleRow] = []
        if isinstance(rules, dict):
            for index, (resource, grants) in enumerate(rules.items(), start=1):
                rows.append(RuleRow(id=index, resource=resource, rules=grants))
        else:
            for rule in rules or []:
                rows.append(rule if isinstance(rule, RuleRow) else RuleRow(**rule))
        self._rules = rows

    def list_rules(self) -> List[RuleRow]:
        return list(self._rules)
