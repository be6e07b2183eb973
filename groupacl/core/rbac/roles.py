"""Role hierarchy built from user groups.

Groups are stored as a flat list of ``(id, parent_id)`` rows ordered by
their position in the tree. The hierarchy is assembled in two passes:
every node is registered by id first, then children are linked to their
parents by id lookup, so the input order only matters for the order in
which children are listed.

The hierarchy is structural. It never widens a grant: a role may perform
an action only if a rule names it explicitly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ...common.logger import get_logger
from .errors import MalformedHierarchyError, UnknownRoleError

logger = get_logger("roles")


def is_root_parent(parent_id: Any) -> bool:
    """Check whether a stored ``parent_id`` marks a root group.

    Empty values and integer ids of zero or below have no parent.
    """
    if parent_id is None:
        return True
    text = str(parent_id).strip()
    if not text:
        return True
    try:
        return int(text) <= 0
    except ValueError:
        return False


def normalize_role_id(role_id: Any) -> str:
    """Return the canonical string form of a role id.

    Role ids arrive as integers from the database and as strings from
    rule payloads; both are compared as strings.
    """
    if role_id is None:
        raise ValueError("Role id cannot be None")
    if isinstance(role_id, bool):
        raise ValueError(f"Invalid role id: {role_id!r}")
    return str(role_id).strip()


def row_value(row: Any, name: str, default: Any = None) -> Any:
    if isinstance(row, dict):
        return row.get(name, default)
    return getattr(row, name, default)


@dataclass(frozen=True)
class Role:
    """A node of the group forest."""

    id: str
    parent_id: Optional[str] = None
    title: str = ""
    children: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class RoleHierarchy:
    """Read-only forest of roles keyed by id."""

    def __init__(self, roles: Dict[str, Role]):
        self._roles = roles

    @classmethod
    def build(cls, flat_roles: Iterable[Any]) -> "RoleHierarchy":
        """Build the forest from ordered ``{id, parent_id, title}`` rows.

        Args:
            flat_roles: Mappings or objects exposing ``id`` and ``parent_id``

        Returns:
            RoleHierarchy instance

        Raises:
            MalformedHierarchyError: On duplicate ids, unknown parents or cycles
        """
        nodes: Dict[str, Tuple[Optional[str], str]] = {}
        order: List[str] = []

        for row in flat_roles:
            raw_id = row_value(row, "id")
            try:
                role_id = normalize_role_id(raw_id)
            except ValueError as e:
                raise MalformedHierarchyError(str(e)) from e
            if not role_id:
                raise MalformedHierarchyError("Group row has an empty id")
            if role_id in nodes:
                raise MalformedHierarchyError(
                    f"Duplicate group id: {role_id}", role_id=role_id
                )

            raw_parent = row_value(row, "parent_id")
            if is_root_parent(raw_parent):
                parent_id = None
            else:
                try:
                    parent_id = normalize_role_id(raw_parent)
                except ValueError as e:
                    raise MalformedHierarchyError(str(e), role_id=role_id) from e
            if parent_id == role_id:
                raise MalformedHierarchyError(
                    f"Group {role_id} is its own parent", role_id=role_id
                )

            nodes[role_id] = (parent_id, str(row_value(row, "title", "") or ""))
            order.append(role_id)

        children: Dict[str, List[str]] = {role_id: [] for role_id in order}
        for role_id in order:
            parent_id = nodes[role_id][0]
            if parent_id is None:
                continue
            if parent_id not in nodes:
                raise MalformedHierarchyError(
                    f"Group {role_id} references unknown parent {parent_id}",
                    role_id=role_id,
                )
            children[parent_id].append(role_id)

        roles = {
            role_id: Role(
                id=role_id,
                parent_id=nodes[role_id][0],
                title=nodes[role_id][1],
                children=tuple(children[role_id]),
            )
            for role_id in order
        }
        hierarchy = cls(roles)
        hierarchy._check_acyclic()

        logger.debug(f"Built role hierarchy with {len(roles)} roles")
        return hierarchy

    def _check_acyclic(self) -> None:
        # Every chain of parents must reach a root within len(self) steps
        for role_id in self._roles:
            seen = {role_id}
            current = self._roles[role_id].parent_id
            while current is not None:
                if current in seen:
                    raise MalformedHierarchyError(
                        f"Cycle detected through group {role_id}", role_id=role_id
                    )
                seen.add(current)
                current = self._roles[current].parent_id

    def get_role(self, role_id: Any) -> Role:
        """Get a role by id.

        Raises:
            UnknownRoleError: If the id was never registered
        """
        try:
            return self._roles[normalize_role_id(role_id)]
        except (KeyError, ValueError):
            raise UnknownRoleError(role_id) from None

    def ancestors(self, role_id: Any) -> List[str]:
        """Ids of all ancestors, nearest parent first."""
        result = []
        current = self.get_role(role_id).parent_id
        while current is not None:
            result.append(current)
            current = self._roles[current].parent_id
        return result

    def descendants(self, role_id: Any) -> List[str]:
        """Ids of all descendants in pre-order."""
        result: List[str] = []
        stack = list(reversed(self.get_role(role_id).children))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._roles[current].children))
        return result

    def is_descendant(self, candidate_id: Any, ancestor_id: Any) -> bool:
        """Check whether ``candidate_id`` sits strictly below ``ancestor_id``."""
        ancestor = self.get_role(ancestor_id).id
        return ancestor in self.ancestors(candidate_id)

    @property
    def roots(self) -> List[Role]:
        return [role for role in self._roles.values() if role.is_root]

    @property
    def ids(self) -> List[str]:
        return list(self._roles)

    def __contains__(self, role_id: Any) -> bool:
        try:
            return normalize_role_id(role_id) in self._roles
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Role]:
        return iter(self._roles.values())

    def __len__(self) -> int:
        return len(self._roles)
