"""Query cache with explicit invalidation.

Query results are cached in Redis under ``(family..., page)`` keys. A family
is every page of one list; invalidating a family bumps its generation
counter, which turns every cached page of that family into a miss at once.

Guarantees:
- once ``invalidate()`` has returned, no ``fetch()`` serves data cached
  before it
- a load that was in flight across an invalidation is returned to its
  own callers but never stored
- concurrent fetches of the same key and generation share one load
- active queries subscribed to a family are refetched on invalidation

Without Redis every fetch goes straight to the fetcher.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable, Sequence
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

import structlog
from pydantic import BaseModel


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

Family = Sequence[Hashable]
Listener = Callable[[], Awaitable[Any]]
QueryStatus = Literal["loading", "success", "error"]


class CacheEntry(BaseModel):
    """Serialized query result stored in Redis."""

    generation: int
    fetched_at: float
    data: dict[str, Any]


class QueryCache:
    """Redis-backed query cache shared by every view that reads comments."""

    def __init__(
        self,
        redis: "Redis | None" = None,
        namespace: str = "query",
        stale_time: float = 5.0,
        ttl: int = 3600,
    ):
        self.redis = redis
        self.namespace = namespace
        self.stale_time = stale_time
        self.ttl = ttl
        self._inflight: dict[str, asyncio.Future] = {}
        self._listeners: dict[str, list[Listener]] = {}
        # Families whose generation bump failed; read around Redis until it succeeds
        self._unbumped: set[str] = set()

    # ==========================================================================
    # Keys
    # ==========================================================================

    def family_key(self, family: Family) -> str:
        return ":".join([self.namespace, *(str(part) for part in family)])

    def entry_key(self, family: Family, page: int) -> str:
        return f"{self.family_key(family)}:page:{page}"

    def _generation_key(self, family: Family) -> str:
        return f"{self.family_key(family)}:gen"

    async def generation(self, family: Family) -> int:
        """Current generation of a family (0 until first invalidated)."""
        if not self.redis:
            return 0
        value = await self.redis.get(self._generation_key(family))
        return int(value) if value else 0

    # ==========================================================================
    # Reads
    # ==========================================================================

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return time.time() - entry.fetched_at < self.stale_time

    async def fetch(
        self,
        family: Family,
        page: int,
        fetcher: Callable[[], Awaitable[M]],
        model: type[M],
    ) -> M:
        """Return the page from cache when fresh, otherwise load and store it."""
        if not self.redis:
            return await fetcher()

        if self.family_key(family) in self._unbumped and not await self._bump(family):
            return await fetcher()

        generation = await self.generation(family)
        key = self.entry_key(family, page)

        cached = await self.redis.get(key)
        if cached:
            entry = CacheEntry.model_validate_json(cached)
            if entry.generation == generation and self._is_fresh(entry):
                logger.debug("query_cache_hit", key=key)
                return model.model_validate(entry.data)

        load_key = f"{key}@{generation}"
        future = self._inflight.get(load_key)
        if future is None:
            future = asyncio.ensure_future(self._load(family, key, generation, fetcher))
            self._inflight[load_key] = future
            future.add_done_callback(lambda _: self._inflight.pop(load_key, None))

        return await asyncio.shield(future)

    async def _load(
        self,
        family: Family,
        key: str,
        generation: int,
        fetcher: Callable[[], Awaitable[M]],
    ) -> M:
        data = await fetcher()

        if await self.generation(family) != generation:
            logger.debug("query_cache_store_skipped", key=key, reason="invalidated")
            return data

        entry = CacheEntry(
            generation=generation,
            fetched_at=time.time(),
            data=data.model_dump(mode="json"),
        )
        await self.redis.set(key, entry.model_dump_json(), ex=self.ttl)
        logger.debug("query_cache_stored", key=key, generation=generation)
        return data

    # ==========================================================================
    # Invalidation
    # ==========================================================================

    def subscribe(self, family: Family, listener: Listener) -> Callable[[], None]:
        """Refetch ``listener`` whenever ``family`` is invalidated.

        Returns:
            Function that removes the subscription
        """
        listeners = self._listeners.setdefault(self.family_key(family), [])
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    async def _bump(self, family: Family) -> bool:
        key = self.family_key(family)
        try:
            generation = await self.redis.incr(self._generation_key(family))
        except Exception:
            self._unbumped.add(key)
            logger.exception("query_cache_invalidate_failed", family=key)
            return False

        self._unbumped.discard(key)
        logger.info("query_cache_invalidated", family=key, generation=generation)
        return True

    async def invalidate(self, family: Family) -> None:
        """Mark every cached page of ``family`` stale and refetch active queries.

        A failed generation bump is logged, not raised: the family then
        bypasses Redis on every fetch until a later bump succeeds.
        """
        key = self.family_key(family)
        if self.redis:
            await self._bump(family)

        listeners = list(self._listeners.get(key, ()))
        if listeners:
            await asyncio.gather(*(listener() for listener in listeners))


class PagedQuery(Generic[M]):
    """One view's handle on a paginated query.

    Keeps the previous page's data visible while the next page loads and
    drops the result of any load overtaken by a later one.
    Load failures are logged and leave the previous data in place.
    """

    def __init__(
        self,
        cache: QueryCache,
        family: Family,
        fetch_page: Callable[[int], Awaitable[M]],
        model: type[M],
        page: int = 1,
    ):
        self.cache = cache
        self.family = tuple(family)
        self.fetch_page = fetch_page
        self.model = model
        self.page = page
        self.status: QueryStatus = "loading"
        self.is_fetching = False
        self.data: M | None = None
        self.error: Exception | None = None
        self._requests = 0
        self._unsubscribe = cache.subscribe(self.family, self.refresh)

    async def refresh(self) -> M | None:
        """Load the current page (from cache when fresh).

        Only the most recent call may update ``data``: a result from an
        earlier call, for another page or from before an invalidation, is
        dropped.
        """
        self._requests += 1
        request = self._requests
        page = self.page
        self.is_fetching = True
        try:
            data = await self.cache.fetch(
                self.family, page, lambda: self.fetch_page(page), self.model
            )
        except Exception as e:
            if request == self._requests:
                self.is_fetching = False
                self.error = e
                self.status = "error"
            logger.warning(
                "query_load_failed",
                family=self.cache.family_key(self.family),
                page=page,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.data

        if request != self._requests:
            logger.debug(
                "query_result_superseded",
                family=self.cache.family_key(self.family),
                page=page,
                current_page=self.page,
            )
            return self.data

        self.data = data
        self.error = None
        self.status = "success"
        self.is_fetching = False
        return data

    async def set_page(self, page: int) -> M | None:
        """Switch to ``page``; the old page stays in ``data`` until it loads."""
        self.page = page
        return await self.refresh()

    async def invalidate(self) -> None:
        """Invalidate this query's family (refetches this and sibling queries)."""
        await self.cache.invalidate(self.family)

    def close(self) -> None:
        """Stop refetching on invalidation."""
        self._unsubscribe()
