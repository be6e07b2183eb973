"""Hierarchical group-based access control.

This module defines the role hierarchy, the action catalog, the rule
table and the policy engine that decides access from them.
"""

from .catalog import (
    ActionCatalogSource,
    Resource,
    ResourceCatalog,
    StaticCatalogSource,
    XmlCatalogSource,
    YamlCatalogSource,
    catalog_source_for_path,
)
from .engine import PolicyEngine, configure_engine, get_engine, reset_engine
from .errors import (
    AclError,
    CatalogLoadError,
    MalformedHierarchyError,
    MalformedRuleError,
    ResolverError,
    UnknownRoleError,
)
from .membership import (
    CachedMembershipResolver,
    GroupMembershipResolver,
    StaticMembershipResolver,
)
from .roles import Role, RoleHierarchy
from .rules import RuleRecord, RuleTable
from .sources import GroupStore, InMemoryGroupStore, InMemoryRuleStore, RuleStore

__all__ = [
    "AclError",
    "ActionCatalogSource",
    "CachedMembershipResolver",
    "CatalogLoadError",
    "GroupMembershipResolver",
    "GroupStore",
    "InMemoryGroupStore",
    "InMemoryRuleStore",
    "MalformedHierarchyError",
    "MalformedRuleError",
    "PolicyEngine",
    "Resource",
    "ResourceCatalog",
    "ResolverError",
    "Role",
    "RoleHierarchy",
    "RuleRecord",
    "RuleStore",
    "RuleTable",
    "StaticCatalogSource",
    "StaticMembershipResolver",
    "UnknownRoleError",
    "XmlCatalogSource",
    "YamlCatalogSource",
    "catalog_source_for_path",
    "configure_engine",
    "get_engine",
    "reset_engine",
]
