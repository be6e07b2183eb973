"""Rule table: which groups may perform each action of each resource.

A rule record is stored per resource. Its ``rules`` payload is a JSON
object mapping action names to the list of group ids granted that action::

    {"view": ["1", "2"], "publish": ["7"]}

The table only grants what a record lists explicitly. A declared action
without a record, or absent from its record, grants nothing.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from ...common.logger import get_logger
from .catalog import ResourceCatalog
from .errors import MalformedRuleError
from .roles import RoleHierarchy, is_root_parent, normalize_role_id, row_value

logger = get_logger("rules")

RuleKey = Tuple[str, str]

EMPTY_GRANT: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class RuleRecord:
    """A decoded rule record for one resource."""

    id: Optional[str]
    resource: str
    grants: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    parent_id: Optional[str] = None

    def granted(self, action: str) -> FrozenSet[str]:
        return self.grants.get(action, EMPTY_GRANT)


def decode_grants(payload: Any, resource: str = "") -> Dict[str, FrozenSet[str]]:
    """Decode and validate a rule payload.

    Args:
        payload: JSON text, bytes, or an already decoded mapping
        resource: Resource name, for error messages

    Returns:
        Mapping of action name to granted role ids

    Raises:
        MalformedRuleError: If the payload is not a mapping of lists of ids
    """
    if payload is None or payload == "":
        return {}
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedRuleError(
                f"Rules of resource '{resource}' are not valid JSON: {e}",
                resource=resource,
            ) from e

    if not isinstance(payload, dict):
        raise MalformedRuleError(
            f"Rules of resource '{resource}' must be an object, "
            f"got {type(payload).__name__}",
            resource=resource,
        )

    grants: Dict[str, FrozenSet[str]] = {}
    for action, role_ids in payload.items():
        if not isinstance(role_ids, list):
            raise MalformedRuleError(
                f"Grant list of '{resource}.{action}' must be a list",
                resource=resource,
            )
        normalized = set()
        for role_id in role_ids:
            if not isinstance(role_id, (str, int)) or isinstance(role_id, bool):
                raise MalformedRuleError(
                    f"Invalid role id {role_id!r} in '{resource}.{action}'",
                    resource=resource,
                )
            normalized.add(normalize_role_id(role_id))
        grants[str(action)] = frozenset(normalized)
    return grants


def parse_rule_record(row: Any) -> RuleRecord:
    """Build a RuleRecord from a stored ``{id, parent_id, resource, rules}`` row.

    Raises:
        MalformedRuleError: If the resource is missing or the rules are malformed
    """
    resource = row_value(row, "resource")
    if not isinstance(resource, str) or not resource.strip():
        raise MalformedRuleError("Rule record is missing a resource")
    resource = resource.strip()

    record_id = row_value(row, "id")
    parent_id = row_value(row, "parent_id")
    if is_root_parent(parent_id):
        parent_id = None

    return RuleRecord(
        id=None if record_id is None else str(record_id),
        resource=resource,
        grants=decode_grants(row_value(row, "rules"), resource),
        parent_id=None if parent_id is None else str(parent_id),
    )


class RuleTable:
    """Read-only mapping of ``(resource, action)`` to granted role ids."""

    def __init__(
        self,
        grants: Dict[RuleKey, FrozenSet[str]],
        records: Optional[Dict[str, RuleRecord]] = None,
    ):
        self._grants = grants
        self._records = records or {}

    @classmethod
    def build(
        cls,
        records: Iterable[Any],
        roles: RoleHierarchy,
        catalog: ResourceCatalog,
    ) -> "RuleTable":
        """Build the table from stored rule records.

        Args:
            records: RuleRecord instances or raw stored rows
            roles: Known roles; ids missing from it are dropped
            catalog: Declared resources and actions

        Returns:
            RuleTable instance

        Raises:
            MalformedRuleError: On malformed payloads or duplicate records
        """
        by_resource: Dict[str, RuleRecord] = {}
        for raw in records:
            record = raw if isinstance(raw, RuleRecord) else parse_rule_record(raw)
            if record.resource in by_resource:
                raise MalformedRuleError(
                    f"Duplicate rule record for resource '{record.resource}'",
                    resource=record.resource,
                )
            by_resource[record.resource] = record

        for name in by_resource:
            if name not in catalog:
                logger.debug(f"Ignoring rule record for undeclared resource '{name}'")

        known = set(roles.ids)
        grants: Dict[RuleKey, FrozenSet[str]] = {}
        for resource in catalog:
            record = by_resource.get(resource.name)
            for action in resource.actions:
                if record is None:
                    grants[(resource.name, action)] = EMPTY_GRANT
                    continue

                listed = record.granted(action)
                unknown = listed - known
                if unknown:
                    logger.debug(
                        f"Dropping unknown roles {sorted(unknown)} "
                        f"from {resource.name}.{action}"
                    )
                grants[(resource.name, action)] = frozenset(listed & known)

            if record is not None:
                for action in record.grants:
                    if not resource.has_action(action):
                        logger.debug(
                            f"Ignoring grant for undeclared action "
                            f"{resource.name}.{action}"
                        )

        logger.info(
            f"Built rule table with {len(grants)} rules "
            f"from {len(by_resource)} records"
        )
        return cls(grants, by_resource)

    def granted_roles(self, resource: str, action: str) -> FrozenSet[str]:
        return self._grants.get((resource, action), EMPTY_GRANT)

    def is_granted(self, role_id: Any, resource: str, action: str) -> bool:
        return normalize_role_id(role_id) in self.granted_roles(resource, action)

    def has_rule(self, resource: str, action: str) -> bool:
        return (resource, action) in self._grants

    def record_for(self, resource: str) -> Optional[RuleRecord]:
        return self._records.get(resource)

    def __len__(self) -> int:
        return len(self._grants)
