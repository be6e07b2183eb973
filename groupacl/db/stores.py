"""SQL-backed group, membership and rule stores."""

from typing import Any, List, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from groupacl.common.logger import get_logger
from groupacl.core.rbac.errors import ResolverError
from groupacl.core.rbac.membership import GroupMembershipResolver
from groupacl.core.rbac.sources import GroupRow, GroupStore, RuleRow, RuleStore
from groupacl.db.models import AclRule, UserGroup, UserGroupMap

logger = get_logger("db.stores")


class SqlGroupStore(GroupStore, GroupMembershipResolver):
    """Reads groups and memberships from the ``usergroups`` tables."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_groups(self) -> List[GroupRow]:
        """Get all groups in tree order (by nested-set ``lft``)."""
        with self.session_factory() as session:
            rows = session.execute(
                select(UserGroup.id, UserGroup.parent_id, UserGroup.title).order_by(
                    UserGroup.lft.asc(), UserGroup.id.asc()
                )
            ).all()
        return [GroupRow(id=r.id, parent_id=r.parent_id, title=r.title) for r in rows]

    def list_group_ids_for_user(self, user_id: Any) -> Set[str]:
        """Get the distinct group ids of a user.

        Raises:
            ResolverError: If the database query fails
        """
        try:
            with self.session_factory() as session:
                rows = session.execute(
                    select(UserGroupMap.group_id)
                    .where(UserGroupMap.user_id == str(user_id))
                    .distinct()
                ).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Membership query failed for user {user_id}: {e}")
            raise ResolverError(
                f"Membership query failed for user {user_id}", user_id=user_id
            ) from e
        return {str(group_id) for group_id in rows}


class SqlRuleStore(RuleStore):
    """Reads rule records from the ``acl`` table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_rules(self) -> List[RuleRow]:
        with self.session_factory() as session:
            rows = session.execute(
                select(AclRule.id, AclRule.parent_id, AclRule.resource, AclRule.rules)
                .order_by(AclRule.id.asc())
            ).all()
        return [
            RuleRow(id=r.id, parent_id=r.parent_id, resource=r.resource, rules=r.rules)
            for r in rows
        ]
