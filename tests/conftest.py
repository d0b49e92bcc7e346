"""
Test infrastructure for the FlashTrend front-end.

Strategy
--------
- The remote backend is replaced by ``FakeBackend``, an in-memory world
  of articles, profiles and roles.  Each principal gets its own
  ``FakeActor`` bound to that world, so role checks and caller-scoped
  operations behave like the real service.
- ``FakeBackend.calls`` counts every remote operation by its wire name;
  tests assert on it to prove what was (or was not) served from cache.
- ``FakeBackend.failures`` maps an operation name to an error message;
  while set, that operation raises ``RemoteCallError``.
- ``FakeBackend.gates`` maps an operation name to an ``asyncio.Event``;
  the operation computes its result, then waits for the event.  Tests use
  it to hold a fetch open across a mutation.
- The app's ``get_query_cache`` dependency is overridden so every
  request uses a fresh in-memory ``QueryCache`` wired to the fake.  The
  lifespan never runs under ``ASGITransport``, so no real HTTP client or
  Redis connection is created.
"""
import asyncio
import itertools
from collections import Counter

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from flashtrend.actor import ActorProvider
from flashtrend.backend import BackendInterface
from flashtrend.cache import MemoryCacheStore
from flashtrend.dependencies import get_query_cache
from flashtrend.errors import RemoteCallError
from flashtrend.identity import Identity
from flashtrend.main import app
from flashtrend.queries import QueryCache
from flashtrend.schemas import Category, NewsArticle, UserProfile, UserRole

ADMIN = "admin-principal"
READER = "reader-principal"

# 2026-01-01T00:00:00Z in nanoseconds.
BASE_TIMESTAMP = 1_767_225_600 * 1_000_000_000


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------

class FakeBackend:
    """In-memory stand-in for the news backend service."""

    def __init__(self, page_size: int = 10) -> None:
        self.page_size = page_size
        self.articles: dict[int, NewsArticle] = {}
        self.profiles: dict[str, UserProfile] = {}
        self.roles: dict[str, UserRole] = {ADMIN: UserRole.admin, READER: UserRole.user}
        self.calls: Counter = Counter()
        self.failures: dict[str, str] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self._ids = itertools.count()

    def record(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.failures:
            raise RemoteCallError(self.failures[operation])

    async def pause(self, operation: str) -> None:
        """Hold *operation* until its gate is set, if one is installed."""
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()

    def add_article(
        self,
        title: str = "Headline",
        summary: str = "Summary",
        category: Category = Category.trending,
        source: str = "Wire",
        creator: str = ADMIN,
    ) -> NewsArticle:
        article_id = next(self._ids)
        article = NewsArticle(
            id=article_id,
            title=title,
            creator=creator,
            source=source,
            summary=summary,
            share_count=0,
            timestamp=BASE_TIMESTAMP + article_id * 1_000_000_000,
            category=category,
        )
        self.articles[article_id] = article
        return article

    def newest_first(self) -> list[NewsArticle]:
        return sorted(self.articles.values(), key=lambda a: a.timestamp, reverse=True)

    async def actor_factory(self, identity: Identity) -> "FakeActor":
        return FakeActor(self, identity.principal)


class FakeActor(BackendInterface):
    def __init__(self, world: FakeBackend, principal: str) -> None:
        self.world = world
        self.principal = principal

    def _require_admin(self) -> None:
        if self.world.roles.get(self.principal) is not UserRole.admin:
            raise RemoteCallError("Unauthorized: Only admins can perform this action")

    def _article(self, article_id: int) -> NewsArticle:
        if article_id not in self.world.articles:
            raise RemoteCallError("Article not found", status_code=404)
        return self.world.articles[article_id]

    async def assign_caller_user_role(self, user: str, role: UserRole) -> None:
        self.world.record("assignCallerUserRole")
        self._require_admin()
        self.world.roles[user] = UserRole(role)

    async def create_news_article(self, title, summary, category, source) -> int:
        self.world.record("createNewsArticle")
        self._require_admin()
        return self.world.add_article(title, summary, Category(category), source, self.principal).id

    async def delete_news_article(self, article_id: int) -> None:
        self.world.record("deleteNewsArticle")
        self._require_admin()
        self._article(article_id)
        del self.world.articles[article_id]

    async def get_articles_by_category(self, category: Category) -> list[NewsArticle]:
        self.world.record("getArticlesByCategory")
        return [a for a in self.world.newest_first() if a.category is Category(category)]

    async def get_caller_user_profile(self) -> UserProfile | None:
        self.world.record("getCallerUserProfile")
        return self.world.profiles.get(self.principal)

    async def get_caller_user_role(self) -> UserRole:
        self.world.record("getCallerUserRole")
        return self.world.roles.get(self.principal, UserRole.guest)

    async def get_news_article(self, article_id: int) -> NewsArticle:
        self.world.record("getNewsArticle")
        return self._article(article_id)

    async def get_paginated_articles(self, page: int) -> list[NewsArticle]:
        self.world.record("getPaginatedArticles")
        start = page * self.world.page_size
        articles = self.world.newest_first()[start:start + self.world.page_size]
        await self.world.pause("getPaginatedArticles")
        return articles

    async def get_user_profile(self, user: str) -> UserProfile | None:
        self.world.record("getUserProfile")
        return self.world.profiles.get(user)

    async def is_caller_admin(self) -> bool:
        self.world.record("isCallerAdmin")
        return self.world.roles.get(self.principal) is UserRole.admin

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        self.world.record("saveCallerUserProfile")
        self.world.profiles[self.principal] = profile

    async def share_news_article(self, article_id: int) -> None:
        self.world.record("shareNewsArticle")
        article = self._article(article_id)
        self.world.articles[article_id] = article.model_copy(
            update={"share_count": article.share_count + 1}
        )

    async def update_news_article(self, article_id, title, summary, category, source) -> NewsArticle:
        self.world.record("updateNewsArticle")
        self._require_admin()
        article = self._article(article_id).model_copy(
            update={
                "title": title,
                "summary": summary,
                "category": Category(category),
                "source": source,
            }
        )
        self.world.articles[article_id] = article
        return article


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def query_cache(backend: FakeBackend, store: MemoryCacheStore) -> QueryCache:
    return QueryCache(store=store, actors=ActorProvider(backend.actor_factory))


@pytest_asyncio.fixture
async def admin_client(query_cache: QueryCache):
    """A connected ``QueryClient`` for the admin principal."""
    return await query_cache.client_for(Identity(ADMIN))


@pytest_asyncio.fixture
async def reader_client(query_cache: QueryCache):
    """A connected ``QueryClient`` for an ordinary user."""
    return await query_cache.client_for(Identity(READER))


@pytest_asyncio.fixture
async def anonymous_client(query_cache: QueryCache):
    return await query_cache.client_for(None)


@pytest_asyncio.fixture
async def async_client(query_cache: QueryCache) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the query cache replaced by the fake-backed one.
    """
    app.dependency_overrides[get_query_cache] = lambda: query_cache
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Principal": ADMIN}


@pytest.fixture
def reader_headers() -> dict:
    return {"X-Principal": READER}
