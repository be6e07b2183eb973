"""Database models for groupacl."""

from groupacl.db.models.usergroup import UserGroup, UserGroupMap
from groupacl.db.models.acl_rule import AclRule

__all__ = [
    "AclRule",
    "UserGroup",
    "UserGroupMap",
]
