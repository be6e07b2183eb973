"""Access checking utilities for host applications.

Provides a per-user checker plus FastAPI decorators and dependencies that
enforce ``(resource, action)`` grants on endpoints. The calling user's id
is read from ``request.state.user_id``; a missing id means an anonymous
caller, who is evaluated as the guest group.
"""

from functools import wraps
from typing import Any, Callable, Iterable, List, Optional, Tuple

from fastapi import HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ...common.logger import get_logger
from .engine import PolicyEngine, get_engine
from .errors import ResolverError

logger = get_logger("checker")

Grant = Tuple[str, str]


class AccessChecker:
    """Checks the grants of one user against an engine."""

    def __init__(self, user_id: Any, engine: Optional[PolicyEngine] = None):
        """
        Initialize with the user being checked.

        Args:
            user_id: User id, or None for anonymous callers
            engine: Policy engine; defaults to the process-wide engine
        """
        self.user_id = user_id
        self.engine = engine or get_engine()

    def can(self, resource: str, action: str) -> bool:
        """Check if the user can perform action on resource."""
        return self.engine.is_allowed_for_user(self.user_id, resource, action)

    def can_any(self, grants: Iterable[Grant]) -> bool:
        """Check if the user holds any of the given grants."""
        return any(self.can(resource, action) for resource, action in grants)

    def can_all(self, grants: Iterable[Grant]) -> bool:
        """Check if the user holds all of the given grants."""
        return all(self.can(resource, action) for resource, action in grants)

    def allowed_actions(self, resource: str) -> List[str]:
        return self.engine.allowed_actions(self.user_id, resource)


def user_id_from_request(request: Request) -> Any:
    return getattr(request.state, "user_id", None)


def _enforce(checker: AccessChecker, grants: List[Grant], require_all: bool) -> None:
    try:
        if require_all:
            has_access = checker.can_all(grants)
        else:
            has_access = checker.can_any(grants)
    except ResolverError as e:
        logger.warning(f"Access check aborted: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Group membership could not be resolved",
        ) from e

    if not has_access:
        required = ", ".join(f"{r}.{a}" for r, a in grants)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {required}",
        )


def require_access(
    *grants: Grant,
    require_all: bool = False,
    engine: Optional[PolicyEngine] = None,
):
    """
    Decorator factory for FastAPI endpoints requiring specific grants.

    The endpoint must accept a ``request: Request`` argument. The check
    runs in the thread pool, off the event loop.

    Args:
        grants: One or more ``(resource, action)`` pairs
        require_all: If True, user must hold ALL grants. Default: any one.
        engine: Policy engine; defaults to the process-wide engine

    Usage:
        @router.post("/articles")
        @require_access(("blog", "publish"))
        async def publish(request: Request):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            if request is None:
                for arg in args:
                    if isinstance(arg, Request):
                        request = arg
                        break

            if request is None:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Endpoint does not receive the request",
                )

            checker = AccessChecker(user_id_from_request(request), engine)
            # Engine calls may block on I/O
            await run_in_threadpool(_enforce, checker, list(grants), require_all)
            return await func(*args, **kwargs)

        return wrapper
    return decorator


class AccessDependency:
    """
    FastAPI dependency for access checking.

    Usage:
        @router.get("/forum", dependencies=[Depends(AccessDependency(("forum", "view")))])
        async def forum():
            ...
    """

    def __init__(
        self,
        *grants: Grant,
        require_all: bool = False,
        engine: Optional[PolicyEngine] = None,
    ):
        self.grants = list(grants)
        self.require_all = require_all
        self.engine = engine

    def __call__(self, request: Request) -> bool:
        checker = AccessChecker(user_id_from_request(request), self.engine)
        _enforce(checker, self.grants, self.require_all)
        return True
