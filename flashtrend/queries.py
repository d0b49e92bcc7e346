"""
Data-access layer: cached query and mutation bindings over the backend.

Design notes
------------
- Every binding pairs a cache key with one remote operation.  Query
  results are stored as JSON-compatible values (via the binding's
  ``TypeAdapter``) so the memory and Redis stores behave the same.
- Keys are namespaced.  Article data is identical for every caller and
  lives under ``shared:``; caller-specific data (profile, role, admin
  flag) lives under ``principal:<id>:``.
- A query is enabled only while the caller has a ready actor.  Disabled
  reads return the binding's fallback and never reach the backend.
- Concurrent reads of one key share a single in-flight fetch.  An
  invalidation detaches in-flight fetches under its prefix: later reads
  start a new fetch and the detached result is never stored.
- Mutations never retry.  On success they mark their key prefixes stale;
  the next read refetches.  A failed refetch keeps the prior value.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from pydantic import TypeAdapter

from flashtrend.actor import ActorProvider, ActorState
from flashtrend.backend import BackendInterface
from flashtrend.cache import CacheStore, key_matches
from flashtrend.errors import ActorUnavailableError, FlashTrendError
from flashtrend.identity import Identity, namespace_for
from flashtrend.middleware import increment_remote_call_count
from flashtrend.schemas import (
    Category,
    NewsArticle,
    QueryResult,
    QueryStatus,
    UserProfile,
    UserRole,
)

logger = logging.getLogger(__name__)

SHARED_NAMESPACE = "shared"

# Key roots whose values do not depend on the caller.
_SHARED_ROOTS: frozenset[str] = frozenset({"articles"})


@dataclass(frozen=True)
class Query:
    name: str
    key: Callable[..., str]
    fetch: Callable[..., Awaitable[Any]]
    adapter: TypeAdapter
    fallback: Callable[[], Any] = lambda: None

    def decode(self, raw: Any) -> Any:
        return self.adapter.validate_python(raw)

    def encode(self, value: Any) -> Any:
        return self.adapter.dump_python(value, mode="json")


@dataclass(frozen=True)
class Mutation:
    name: str
    run: Callable[..., Awaitable[Any]]
    invalidates: tuple[str, ...] = ()
    # Index of an argument naming another principal whose cached entries
    # under ``invalidates`` must go stale too.
    principal_arg: Optional[int] = None


_ARTICLES = TypeAdapter(list[NewsArticle])
_ARTICLE = TypeAdapter(NewsArticle)
_PROFILE = TypeAdapter(Optional[UserProfile])
_ROLE = TypeAdapter(UserRole)
_BOOL = TypeAdapter(bool)


# ---------------------------------------------------------------------------
# Query bindings
# ---------------------------------------------------------------------------

CALLER_PROFILE = Query(
    name="profile",
    key=lambda: "profile",
    fetch=lambda actor: actor.get_caller_user_profile(),
    adapter=_PROFILE,
)

IS_ADMIN = Query(
    name="isAdmin",
    key=lambda: "isAdmin",
    fetch=lambda actor: actor.is_caller_admin(),
    adapter=_BOOL,
    fallback=lambda: False,
)

CALLER_ROLE = Query(
    name="role",
    key=lambda: "role",
    fetch=lambda actor: actor.get_caller_user_role(),
    adapter=_ROLE,
)

USER_PROFILE = Query(
    name="userProfile",
    key=lambda principal: f"userProfile:{principal}",
    fetch=lambda actor, principal: actor.get_user_profile(principal),
    adapter=_PROFILE,
)

PAGINATED_ARTICLES = Query(
    name="articles:page",
    key=lambda page: f"articles:page:{page}",
    fetch=lambda actor, page: actor.get_paginated_articles(page),
    adapter=_ARTICLES,
    fallback=list,
)

ARTICLES_BY_CATEGORY = Query(
    name="articles:category",
    key=lambda category: f"articles:category:{Category(category).value}",
    fetch=lambda actor, category: actor.get_articles_by_category(Category(category)),
    adapter=_ARTICLES,
    fallback=list,
)

ARTICLE_DETAIL = Query(
    name="articles:detail",
    key=lambda article_id: f"articles:detail:{article_id}",
    fetch=lambda actor, article_id: actor.get_news_article(article_id),
    adapter=_ARTICLE,
)


# ---------------------------------------------------------------------------
# Mutation bindings
# ---------------------------------------------------------------------------

SAVE_PROFILE = Mutation(
    name="saveProfile",
    run=lambda actor, profile: actor.save_caller_user_profile(profile),
    invalidates=("profile",),
)

CREATE_ARTICLE = Mutation(
    name="createArticle",
    run=lambda actor, title, summary, category, source: actor.create_news_article(
        title, summary, category, source
    ),
    invalidates=("articles",),
)

SHARE_ARTICLE = Mutation(
    name="shareArticle",
    run=lambda actor, article_id: actor.share_news_article(article_id),
    invalidates=("articles",),
)

UPDATE_ARTICLE = Mutation(
    name="updateArticle",
    run=lambda actor, article_id, title, summary, category, source: actor.update_news_article(
        article_id, title, summary, category, source
    ),
    invalidates=("articles",),
)

DELETE_ARTICLE = Mutation(
    name="deleteArticle",
    run=lambda actor, article_id: actor.delete_news_article(article_id),
    invalidates=("articles",),
)

ASSIGN_ROLE = Mutation(
    name="assignRole",
    run=lambda actor, principal, role: actor.assign_caller_user_role(principal, role),
    invalidates=("role", "isAdmin"),
    principal_arg=0,
)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def scoped_key(namespace: str, key: str) -> str:
    if key.split(":", 1)[0] in _SHARED_ROOTS:
        return f"{SHARED_NAMESPACE}:{key}"
    return f"{namespace}:{key}"


@dataclass
class QueryCache:
    """
    Process-wide state behind every ``QueryClient``: the store, the actor
    provider and the in-flight fetch table.  Passed explicitly through
    the application state rather than held in a module global.
    """

    store: CacheStore
    actors: ActorProvider
    inflight: dict[str, asyncio.Future] = field(default_factory=dict)

    async def client_for(self, identity: Identity | None) -> "QueryClient":
        await self.actors.connect(identity)
        for evicted in await self.actors.evict_idle():
            await self.drop_namespace(namespace_for(evicted))
        return QueryClient(self, identity)

    def detach_inflight(self, scoped_prefix: str) -> None:
        """Stop sharing in-flight fetches under *scoped_prefix*."""
        for key in [k for k in self.inflight if key_matches(k, scoped_prefix)]:
            del self.inflight[key]

    async def drop_namespace(self, namespace: str) -> None:
        self.detach_inflight(namespace)
        await self.store.clear(namespace)

    async def logout(self, identity: Identity | None) -> None:
        """Discard everything cached on behalf of *identity*."""
        await QueryClient(self, identity).clear()
        await self.actors.release(identity)

    async def close(self) -> None:
        await self.actors.close()


class QueryClient:
    """Caller-bound view over a ``QueryCache``."""

    def __init__(self, cache: QueryCache, identity: Identity | None) -> None:
        self._cache = cache
        self.identity = identity
        self.namespace = namespace_for(identity)

    @property
    def store(self) -> CacheStore:
        return self._cache.store

    @property
    def actor_state(self) -> ActorState:
        return self._cache.actors.state(self.identity)

    def key_for(self, query: Query, *params: Any) -> str:
        return scoped_key(self.namespace, query.key(*params))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def fetch(self, query: Query, *params: Any) -> Any:
        """
        Return the value of *query*, from cache when fresh.

        Disabled queries return the fallback.  Remote failures propagate
        as ``RemoteCallError`` with the cached value left untouched.
        """
        state = self.actor_state
        if not state.ready:
            return query.fallback()

        key = self.key_for(query, *params)
        entry = await self.store.get(key)
        if entry is not None and not entry.stale:
            self.store.record(hit=True)
            return query.decode(entry.value)

        self.store.record(hit=False)
        return await self._dispatch(key, query, state.actor, params)

    async def read(self, query: Query, *params: Any) -> QueryResult:
        """``fetch`` reported as a ``QueryResult`` for the view layer."""
        if not self.actor_state.ready:
            return QueryResult(status=QueryStatus.disabled, data=query.fallback())
        try:
            data = await self.fetch(query, *params)
        except FlashTrendError as exc:
            return QueryResult(
                status=QueryStatus.error,
                data=await self.cached(query, *params),
                error=str(exc),
            )
        return QueryResult(status=QueryStatus.success, data=data)

    async def peek(self, query: Query, *params: Any) -> QueryResult:
        """Report the current state of *query* without fetching."""
        if not self.actor_state.ready:
            return QueryResult(status=QueryStatus.disabled, data=query.fallback())
        key = self.key_for(query, *params)
        entry = await self.store.get(key)
        data = query.decode(entry.value) if entry is not None else query.fallback()
        if entry is None or key in self._cache.inflight:
            return QueryResult(status=QueryStatus.pending, data=data)
        return QueryResult(status=QueryStatus.success, data=data)

    async def cached(self, query: Query, *params: Any) -> Any:
        """The stored value of *query* (stale or not), or None."""
        entry = await self.store.get(self.key_for(query, *params))
        return query.decode(entry.value) if entry is not None else None

    async def _dispatch(
        self, key: str, query: Query, actor: BackendInterface, params: tuple
    ) -> Any:
        inflight = self._cache.inflight
        task = inflight.get(key)
        if task is None or task.done():
            increment_remote_call_count()
            task = asyncio.ensure_future(self._load(key, query, actor, params))
            inflight[key] = task

            def _forget(finished: asyncio.Future) -> None:
                if inflight.get(key) is finished:
                    del inflight[key]

            task.add_done_callback(_forget)
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    async def _load(
        self, key: str, query: Query, actor: BackendInterface, params: tuple
    ) -> Any:
        value = await query.fetch(actor, *params)
        # An invalidation while the fetch was running detaches it from the
        # in-flight table; its result predates the mutation and is not stored.
        if self._cache.inflight.get(key) is not asyncio.current_task():
            logger.debug("Discarding superseded fetch for %s", key)
            return value
        await self.store.set(key, query.encode(value))
        logger.debug("Cached %s", key)
        return value

    # ------------------------------------------------------------------
    # Mutations and invalidation
    # ------------------------------------------------------------------

    async def mutate(self, mutation: Mutation, *args: Any) -> Any:
        """
        Run *mutation* against the backend and apply its invalidations.

        Fails immediately with ``ActorUnavailableError`` when the caller
        has no actor.  Remote failures propagate unchanged and invalidate
        nothing.
        """
        actor = self.actor_state.actor
        if actor is None:
            raise ActorUnavailableError()

        increment_remote_call_count()
        result = await mutation.run(actor, *args)
        logger.debug("Mutation %s succeeded for %s", mutation.name, self.namespace)

        namespaces = [self.namespace]
        if mutation.principal_arg is not None:
            namespaces.append(namespace_for(Identity(str(args[mutation.principal_arg]))))
        for namespace in namespaces:
            for prefix in mutation.invalidates:
                await self._mark_stale(scoped_key(namespace, prefix))
        return result

    async def invalidate(self, prefix: str) -> int:
        """Mark every entry of this caller under *prefix* stale."""
        return await self._mark_stale(scoped_key(self.namespace, prefix))

    async def _mark_stale(self, scoped_prefix: str) -> int:
        self._cache.detach_inflight(scoped_prefix)
        count = await self.store.mark_stale(scoped_prefix)
        logger.debug("Cache invalidated %d key(s) under %r", count, scoped_prefix)
        return count

    async def clear(self) -> None:
        """Drop this caller's entries and the shared article entries."""
        await self._cache.drop_namespace(self.namespace)
        await self._cache.drop_namespace(SHARED_NAMESPACE)
        logger.debug("Cache cleared for %s", self.namespace)
