"""Database seeding for groupacl.

Creates the default group tree and rule records.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from groupacl.db.models import AclRule, UserGroup, UserGroupMap


# Default group tree: id, parent_id, title
DEFAULT_GROUPS: List[Dict[str, Any]] = [
    {"id": 1, "parent_id": 0, "title": "Public"},
    {"id": 2, "parent_id": 1, "title": "Registered"},
    {"id": 3, "parent_id": 2, "title": "Author"},
    {"id": 4, "parent_id": 3, "title": "Editor"},
    {"id": 6, "parent_id": 1, "title": "Manager"},
    {"id": 7, "parent_id": 6, "title": "Administrator"},
    {"id": 8, "parent_id": 1, "title": "Super Users"},
    {"id": 9, "parent_id": 1, "title": "Guest"},
]

# Super Users hold the bypass grant
DEFAULT_RULES: Dict[str, Dict[str, List[str]]] = {
    "app": {"admin": ["8"], "login": ["2", "6", "8"]},
}


def nested_set_bounds(groups: Iterable[Dict[str, Any]]) -> Dict[int, tuple]:
    """Compute ``(lft, rgt)`` for each group from its parent links.

    Siblings keep their input order.
    """
    groups = list(groups)
    children: Dict[int, List[int]] = {}
    roots: List[int] = []
    for group in groups:
        parent_id = int(group.get("parent_id") or 0)
        if parent_id > 0:
            children.setdefault(parent_id, []).append(int(group["id"]))
        else:
            roots.append(int(group["id"]))

    bounds: Dict[int, tuple] = {}
    counter = 0

    def visit(group_id: int) -> None:
        nonlocal counter
        counter += 1
        lft = counter
        for child_id in children.get(group_id, []):
            visit(child_id)
        counter += 1
        bounds[group_id] = (lft, counter)

    for root_id in roots:
        visit(root_id)
    return bounds


def seed_groups(
    db: Session, groups: Optional[Iterable[Dict[str, Any]]] = None
) -> Dict[int, UserGroup]:
    """
    Create the group tree.

    Groups are idempotent - existing ids are updated in place.

    Args:
        db: Database session
        groups: Group rows; defaults to DEFAULT_GROUPS

    Returns:
        Dict mapping group id to UserGroup object
    """
    groups = list(groups if groups is not None else DEFAULT_GROUPS)
    bounds = nested_set_bounds(groups)
    seeded = {}

    for group in groups:
        group_id = int(group["id"])
        lft, rgt = bounds.get(group_id, (0, 0))
        existing = db.get(UserGroup, group_id)
        if existing is None:
            existing = UserGroup(id=group_id)
            db.add(existing)
        existing.parent_id = int(group.get("parent_id") or 0)
        existing.title = group.get("title", f"Group {group_id}")
        existing.lft = lft
        existing.rgt = rgt
        seeded[group_id] = existing

    db.flush()
    return seeded


def seed_rules(
    db: Session, rules: Optional[Dict[str, Dict[str, List[Any]]]] = None
) -> Dict[str, AclRule]:
    """
    Create or replace rule records.

    Args:
        db: Database session
        rules: Mapping of resource name to ``{action: [group ids]}``;
            defaults to DEFAULT_RULES

    Returns:
        Dict mapping resource name to AclRule object
    """
    rules = rules if rules is not None else DEFAULT_RULES
    seeded = {}

    for resource, grants in rules.items():
        payload = json.dumps(
            {action: [str(g) for g in group_ids] for action, group_ids in grants.items()}
        )
        existing = db.query(AclRule).filter(AclRule.resource == resource).first()
        if existing is None:
            existing = AclRule(resource=resource, parent_id=0)
            db.add(existing)
        existing.rules = payload
        seeded[resource] = existing

    db.flush()
    return seeded


def add_user_to_group(db: Session, user_id: Any, group_id: int) -> UserGroupMap:
    """Add a membership unless it already exists."""
    existing = (
        db.query(UserGroupMap)
        .filter(UserGroupMap.user_id == str(user_id), UserGroupMap.group_id == group_id)
        .first()
    )
    if existing:
        return existing
    membership = UserGroupMap(user_id=str(user_id), group_id=group_id)
    db.add(membership)
    db.flush()
    return membership
