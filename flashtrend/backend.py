"""
Remote service client.

``BackendInterface`` is the typed surface of the news backend: thirteen
async operations, every one of which may fail.  ``HttpBackend`` speaks
the backend's JSON RPC dialect over httpx:

    POST /rpc/<operation>   {"args": [...]}
    -> 200 {"ok": <value>}  |  {"err": "<message>"}  |  non-2xx

The caller's principal travels in the identity header so the backend can
apply its own role checks.  Every failure is raised as
``RemoteCallError`` carrying the remote message; nothing is retried.
"""
import abc
import logging
from typing import Any

import httpx

from flashtrend.config import settings
from flashtrend.errors import RemoteCallError
from flashtrend.schemas import Category, NewsArticle, UserProfile, UserRole

logger = logging.getLogger(__name__)


class BackendInterface(abc.ABC):
    @abc.abstractmethod
    async def assign_caller_user_role(self, user: str, role: UserRole) -> None: ...

    @abc.abstractmethod
    async def create_news_article(
        self, title: str, summary: str, category: Category, source: str
    ) -> int: ...

    @abc.abstractmethod
    async def delete_news_article(self, article_id: int) -> None: ...

    @abc.abstractmethod
    async def get_articles_by_category(self, category: Category) -> list[NewsArticle]: ...

    @abc.abstractmethod
    async def get_caller_user_profile(self) -> UserProfile | None: ...

    @abc.abstractmethod
    async def get_caller_user_role(self) -> UserRole: ...

    @abc.abstractmethod
    async def get_news_article(self, article_id: int) -> NewsArticle: ...

    @abc.abstractmethod
    async def get_paginated_articles(self, page: int) -> list[NewsArticle]: ...

    @abc.abstractmethod
    async def get_user_profile(self, user: str) -> UserProfile | None: ...

    @abc.abstractmethod
    async def is_caller_admin(self) -> bool: ...

    @abc.abstractmethod
    async def save_caller_user_profile(self, profile: UserProfile) -> None: ...

    @abc.abstractmethod
    async def share_news_article(self, article_id: int) -> None: ...

    @abc.abstractmethod
    async def update_news_article(
        self,
        article_id: int,
        title: str,
        summary: str,
        category: Category,
        source: str,
    ) -> NewsArticle: ...

    async def close(self) -> None:
        """Release transport resources owned by this actor (none by default)."""


def _error_message(response: httpx.Response, payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("err") or payload.get("detail")
        if message:
            return str(message)
    return response.text or f"Remote call failed with status {response.status_code}"


class HttpBackend(BackendInterface):
    """
    ``BackendInterface`` over a shared ``httpx.AsyncClient``.

    The client is owned by the application lifespan; one ``HttpBackend``
    is bound to one principal.
    """

    def __init__(self, client: httpx.AsyncClient, principal: str) -> None:
        self._client = client
        self.principal = principal

    async def _call(self, operation: str, *args: Any) -> Any:
        try:
            response = await self._client.post(
                f"/rpc/{operation}",
                json={"args": list(args)},
                headers={settings.IDENTITY_HEADER: self.principal},
            )
        except httpx.HTTPError as exc:
            logger.warning("Remote call %s failed: %s", operation, exc)
            raise RemoteCallError(str(exc) or exc.__class__.__name__) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = _error_message(response, payload)
            logger.warning(
                "Remote call %s rejected (%d): %s", operation, response.status_code, message
            )
            raise RemoteCallError(message, status_code=response.status_code)
        if not isinstance(payload, dict):
            raise RemoteCallError(f"Malformed response from {operation}")
        if "err" in payload:
            message = _error_message(response, payload)
            logger.warning("Remote call %s rejected: %s", operation, message)
            raise RemoteCallError(message)
        if "ok" not in payload:
            raise RemoteCallError(f"Malformed response from {operation}")
        return payload["ok"]

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    async def create_news_article(
        self, title: str, summary: str, category: Category, source: str
    ) -> int:
        result = await self._call(
            "createNewsArticle", title, summary, Category(category).value, source
        )
        return int(result)

    async def delete_news_article(self, article_id: int) -> None:
        await self._call("deleteNewsArticle", article_id)

    async def get_articles_by_category(self, category: Category) -> list[NewsArticle]:
        result = await self._call("getArticlesByCategory", Category(category).value)
        return [NewsArticle.model_validate(item) for item in result or []]

    async def get_news_article(self, article_id: int) -> NewsArticle:
        return NewsArticle.model_validate(await self._call("getNewsArticle", article_id))

    async def get_paginated_articles(self, page: int) -> list[NewsArticle]:
        result = await self._call("getPaginatedArticles", page)
        return [NewsArticle.model_validate(item) for item in result or []]

    async def share_news_article(self, article_id: int) -> None:
        await self._call("shareNewsArticle", article_id)

    async def update_news_article(
        self,
        article_id: int,
        title: str,
        summary: str,
        category: Category,
        source: str,
    ) -> NewsArticle:
        result = await self._call(
            "updateNewsArticle",
            article_id,
            title,
            summary,
            Category(category).value,
            source,
        )
        return NewsArticle.model_validate(result)

    # ------------------------------------------------------------------
    # Profiles and roles
    # ------------------------------------------------------------------

    async def assign_caller_user_role(self, user: str, role: UserRole) -> None:
        await self._call("assignCallerUserRole", user, UserRole(role).value)

    async def get_caller_user_profile(self) -> UserProfile | None:
        result = await self._call("getCallerUserProfile")
        return UserProfile.model_validate(result) if result is not None else None

    async def get_caller_user_role(self) -> UserRole:
        return UserRole(await self._call("getCallerUserRole"))

    async def get_user_profile(self, user: str) -> UserProfile | None:
        result = await self._call("getUserProfile", user)
        return UserProfile.model_validate(result) if result is not None else None

    async def is_caller_admin(self) -> bool:
        return bool(await self._call("isCallerAdmin"))

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        await self._call("saveCallerUserProfile", profile.model_dump())


def create_http_client() -> httpx.AsyncClient:
    """Shared transport for every ``HttpBackend``; closed at shutdown."""
    return httpx.AsyncClient(
        base_url=settings.BACKEND_URL,
        timeout=settings.BACKEND_TIMEOUT,
    )
