"""Group membership resolution.

Maps a user id to the ids of the groups the user belongs to. The engine
treats resolvers as an external boundary: a lookup may be slow or fail,
and failures surface as ``ResolverError``.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Set, Tuple

from ...common.logger import get_logger
from .roles import normalize_role_id

logger = get_logger("membership")

DEFAULT_CACHE_TTL = 60.0
DEFAULT_CACHE_MAXSIZE = 1024


class GroupMembershipResolver(ABC):
    """Resolves the groups of a user."""

    @abstractmethod
    def list_group_ids_for_user(self, user_id: Any) -> Set[Any]:
        """Return the ids of the groups ``user_id`` belongs to.

        Raises:
            ResolverError: If the lookup failed
        """


class StaticMembershipResolver(GroupMembershipResolver):
    """Memberships declared up front."""

    def __init__(self, memberships: Mapping[Any, Iterable[Any]]):
        self._memberships: Dict[str, FrozenSet[str]] = {
            str(user_id): frozenset(normalize_role_id(g) for g in group_ids)
            for user_id, group_ids in memberships.items()
        }

    def list_group_ids_for_user(self, user_id: Any) -> Set[str]:
        return set(self._memberships.get(str(user_id), ()))


class CachedMembershipResolver(GroupMembershipResolver):
    """Caches another resolver's answers per user id.

    Entries expire ``ttl`` seconds after they were stored, and the least
    recently used entries are evicted beyond ``maxsize`` users. The cache
    lock is only held to read or store entries, never while the wrapped
    resolver runs. Failed lookups are not cached.
    """

    def __init__(
        self,
        inner: GroupMembershipResolver,
        ttl: float = DEFAULT_CACHE_TTL,
        maxsize: int = DEFAULT_CACHE_MAXSIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            inner: Resolver whose answers are cached
            ttl: Seconds an entry stays valid
            maxsize: Maximum number of cached users
            clock: Monotonic time source
        """
        if ttl <= 0:
            raise ValueError(f"Cache ttl must be positive, got {ttl}")
        if maxsize < 1:
            raise ValueError(f"Cache maxsize must be at least 1, got {maxsize}")
        self.inner = inner
        self.ttl = ttl
        self.maxsize = maxsize
        self.clock = clock
        self._cache: "OrderedDict[str, Tuple[float, FrozenSet[str]]]" = OrderedDict()
        self._lock = threading.Lock()

    def list_group_ids_for_user(self, user_id: Any) -> Set[str]:
        key = str(user_id)
        with self._lock:
            item = self._cache.get(key)
            if item is not None:
                stored_at, cached = item
                if self.clock() - stored_at < self.ttl:
                    self._cache.move_to_end(key)
                    return set(cached)
                del self._cache[key]

        group_ids = frozenset(
            normalize_role_id(g) for g in self.inner.list_group_ids_for_user(user_id)
        )
        with self._lock:
            self._cache[key] = (self.clock(), group_ids)
            self._cache.move_to_end(key)
            # Evict least recently used
            while len(self._cache) > self.maxsize:
                self._cache.popitem(last=False)
        logger.debug(f"Cached {len(group_ids)} groups for user {key}")
        return set(group_ids)

    def invalidate(self, user_id: Any) -> None:
        with self._lock:
            self._cache.pop(str(user_id), None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        """Number of unexpired entries."""
        now = self.clock()
        with self._lock:
            return sum(
                1 for stored_at, _ in self._cache.values() if now - stored_at < self.ttl
            )
