"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that database-generated fields are populated. All fields have sensible
defaults but can be overridden via keyword arguments.

Usage::

    from tests.factories import create_group, create_membership

    def test_something(db_session):
        root = create_group(db_session, title="Public")
        editors = create_group(db_session, parent=root, title="Editors")
        create_membership(db_session, user_id="alice", group=editors)
"""

import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from groupacl.db.models import AclRule, UserGroup, UserGroupMap


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


def create_group(
    session: Session,
    *,
    id: Optional[int] = None,
    parent: Optional[UserGroup] = None,
    title: Optional[str] = None,
    lft: Optional[int] = None,
) -> UserGroup:
    n = _next_id()
    group = UserGroup(
        id=id,
        parent_id=parent.id if parent is not None else 0,
        title=title or f"Group {n}",
        lft=lft if lft is not None else n,
        rgt=0,
    )
    session.add(group)
    session.flush()
    return group


def create_membership(
    session: Session, *, user_id: Any, group: UserGroup
) -> UserGroupMap:
    membership = UserGroupMap(user_id=str(user_id), group_id=group.id)
    session.add(membership)
    session.flush()
    return membership


def create_rule(
    session: Session,
    *,
    resource: str,
    grants: Optional[Dict[str, List[Any]]] = None,
    raw: Optional[str] = None,
    parent: Optional[AclRule] = None,
) -> AclRule:
    rule = AclRule(
        resource=resource,
        parent_id=parent.id if parent is not None else 0,
        rules=raw if raw is not None else json.dumps(grants or {}),
    )
    session.add(rule)
    session.flush()
    return rule
