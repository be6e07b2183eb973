"""Policy engine for groupacl.

Combines the role hierarchy, the resource catalog and the rule table into
allow/deny decisions for single groups and for users.

A user's decision is evaluated in two steps:
1. Superuser bypass - if any of the user's groups holds the
   ``(app, admin)`` grant, everything is allowed.
2. Aggregate check - the user is allowed if any of their groups is.

Anonymous users, and users without any membership, are evaluated as the
configured guest group.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Iterable, List, NamedTuple, Optional

from ...common.logger import get_logger
from .catalog import ActionCatalogSource, ResourceCatalog
from .errors import ResolverError
from .membership import GroupMembershipResolver
from .roles import RoleHierarchy, normalize_role_id
from .rules import RuleTable
from .sources import GroupStore, RuleStore

logger = get_logger("engine")

SUPERUSER_RESOURCE = "app"
SUPERUSER_ACTION = "admin"

_CANCELLED = (asyncio.CancelledError, concurrent.futures.CancelledError)


class PolicyTables(NamedTuple):
    """The three read-only tables an engine decides from."""

    roles: RoleHierarchy
    catalog: ResourceCatalog
    rules: RuleTable


class PolicyEngine:
    """
    Evaluates access of groups and users to resource actions.

    Tables are built lazily on first use, exactly once, behind a lock.
    After that they are never mutated; ``reload()`` builds a fresh set and
    swaps it in.
    """

    def __init__(
        self,
        group_store: GroupStore,
        rule_store: RuleStore,
        catalog_source: ActionCatalogSource,
        resolver: Optional[GroupMembershipResolver] = None,
        *,
        guest_role_id: Any,
        superuser_resource: str = SUPERUSER_RESOURCE,
        superuser_action: str = SUPERUSER_ACTION,
    ):
        """
        Initialize the policy engine.

        Args:
            group_store: Source of user groups
            rule_store: Source of rule records
            catalog_source: Source of the action catalog
            resolver: Resolves user memberships; required for user checks
            guest_role_id: Group used for anonymous users
            superuser_resource: Resource of the bypass grant
            superuser_action: Action of the bypass grant
        """
        self.group_store = group_store
        self.rule_store = rule_store
        self.catalog_source = catalog_source
        self.resolver = resolver
        self.guest_role_id = normalize_role_id(guest_role_id)
        self.superuser_resource = superuser_resource
        self.superuser_action = superuser_action
        self._tables: Optional[PolicyTables] = None
        self._build_lock = threading.Lock()

    # --- Construction ---

    def _load_tables(self) -> PolicyTables:
        catalog = ResourceCatalog.load(self.catalog_source)
        roles = RoleHierarchy.build(self.group_store.list_groups())
        rules = RuleTable.build(self.rule_store.list_rules(), roles, catalog)
        if self.guest_role_id not in roles:
            logger.warning(
                f"Guest group {self.guest_role_id} is not part of the hierarchy"
            )
        return PolicyTables(roles=roles, catalog=catalog, rules=rules)

    def build(self) -> PolicyTables:
        """Build the tables if they were not built yet.

        Concurrent callers block until the first build finishes. A failed
        build leaves the engine unbuilt and re-raises.
        """
        tables = self._tables
        if tables is not None:
            return tables
        with self._build_lock:
            if self._tables is None:
                self._tables = self._load_tables()
                logger.info(
                    f"Policy tables built: {len(self._tables.roles)} groups, "
                    f"{len(self._tables.catalog)} resources, "
                    f"{len(self._tables.rules)} rules"
                )
            return self._tables

    def reload(self) -> PolicyTables:
        """Rebuild all tables from their sources and swap them in."""
        with self._build_lock:
            self._tables = self._load_tables()
            logger.info("Policy tables reloaded")
            return self._tables

    @property
    def is_built(self) -> bool:
        return self._tables is not None

    @property
    def roles(self) -> RoleHierarchy:
        return self.build().roles

    @property
    def catalog(self) -> ResourceCatalog:
        return self.build().catalog

    @property
    def rules(self) -> RuleTable:
        return self.build().rules

    # --- Decisions ---

    def is_allowed_for_role(self, role_id: Any, resource: str, action: str) -> bool:
        """
        Check whether a single group may perform an action.

        Unknown resources, unknown actions and missing rules all deny.

        Raises:
            UnknownRoleError: If the group is not part of the hierarchy
        """
        tables = self.build()
        role = tables.roles.get_role(role_id)
        return role.id in tables.rules.granted_roles(resource, action)

    authorise = is_allowed_for_role

    def is_allowed_for_roles(
        self, role_ids: Iterable[Any], resource: str, action: str
    ) -> bool:
        """Check whether any of the given groups may perform an action."""
        unique = {normalize_role_id(r) for r in role_ids}
        allowed = False
        # Every id is checked so unknown groups always surface
        for role_id in sorted(unique):
            if self.is_allowed_for_role(role_id, resource, action):
                allowed = True
        return allowed

    def resolve_roles(self, user_id: Any) -> frozenset:
        """
        Get the deduplicated groups a user is evaluated with.

        Returns the guest group for anonymous users and for users without
        any membership.

        Raises:
            ResolverError: If the membership lookup failed or was cancelled
        """
        if user_id is None:
            return frozenset([self.guest_role_id])
        if self.resolver is None:
            raise ResolverError("No membership resolver configured", user_id=user_id)

        try:
            group_ids = self.resolver.list_group_ids_for_user(user_id)
        except ResolverError:
            raise
        except _CANCELLED as e:
            raise ResolverError(
                f"Membership lookup for user {user_id} was cancelled",
                user_id=user_id,
                cancelled=True,
            ) from e
        except Exception as e:
            raise ResolverError(
                f"Membership lookup for user {user_id} failed: {e}", user_id=user_id
            ) from e

        roles = frozenset(normalize_role_id(g) for g in group_ids or ())
        if not roles:
            return frozenset([self.guest_role_id])
        return roles

    def is_superuser(self, user_id: Any) -> bool:
        roles = self.resolve_roles(user_id)
        return self.is_allowed_for_roles(
            roles, self.superuser_resource, self.superuser_action
        )

    def is_allowed_for_user(self, user_id: Any, resource: str, action: str) -> bool:
        """
        Check whether a user may perform an action.

        Args:
            user_id: User id, or None for anonymous callers
            resource: Resource name
            action: Action name

        Returns:
            True if allowed

        Raises:
            ResolverError: If the user's groups could not be resolved
            UnknownRoleError: If a resolved group is not part of the hierarchy
        """
        roles = self.resolve_roles(user_id)

        if self.is_allowed_for_roles(
            roles, self.superuser_resource, self.superuser_action
        ):
            logger.debug(f"User {user_id} allowed {resource}.{action} as superuser")
            return True

        allowed = self.is_allowed_for_roles(roles, resource, action)
        logger.debug(
            f"User {user_id} with groups {sorted(roles)} "
            f"{'allowed' if allowed else 'denied'} {resource}.{action}"
        )
        return allowed

    def allowed_actions(self, user_id: Any, resource: str) -> List[str]:
        """Get the declared actions of a resource the user may perform."""
        roles = self.resolve_roles(user_id)
        actions = self.catalog.actions_for(resource)
        if self.is_allowed_for_roles(
            roles, self.superuser_resource, self.superuser_action
        ):
            return list(actions)
        return [a for a in actions if self.is_allowed_for_roles(roles, resource, a)]


_engine: Optional[PolicyEngine] = None
_engine_lock = threading.Lock()


def configure_engine(engine: PolicyEngine) -> PolicyEngine:
    """Install the process-wide engine."""
    global _engine
    with _engine_lock:
        _engine = engine
    return engine


def get_engine() -> PolicyEngine:
    """Get the process-wide engine.

    Raises:
        RuntimeError: If no engine was configured
    """
    with _engine_lock:
        engine = _engine
    if engine is None:
        raise RuntimeError("Policy engine is not configured")
    return engine


def reset_engine() -> None:
    global _engine
    with _engine_lock:
        _engine = None
