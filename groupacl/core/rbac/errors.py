"""Exceptions raised by the access control engine."""

from typing import Any, Optional


class AclError(Exception):
    """Base class for all access control errors."""


class CatalogLoadError(AclError):
    """Raised when the action catalog is missing or malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class MalformedHierarchyError(AclError):
    """Raised when group data cannot be assembled into a forest."""

    def __init__(self, message: str, role_id: Optional[str] = None):
        super().__init__(message)
        self.role_id = role_id


class MalformedRuleError(AclError):
    """Raised when a stored rule record cannot be decoded."""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message)
        self.resource = resource


class UnknownRoleError(AclError):
    """Raised when a role id was never registered in the hierarchy.

    This signals a data-integrity problem and is deliberately not treated
    as a plain deny.
    """

    def __init__(self, role_id: Any):
        super().__init__(f"Unknown role: {role_id}")
        self.role_id = role_id


class ResolverError(AclError):
    """Raised when group membership of a user could not be resolved."""

    def __init__(self, message: str, user_id: Any = None, cancelled: bool = False):
        super().__init__(message)
        self.user_id = user_id
        self.cancelled = cancelled
