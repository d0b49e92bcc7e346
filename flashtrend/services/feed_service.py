"""
Feed service: the news feed page and article sharing.

The feed has two modes.  Without a category it pages through
``getPaginatedArticles`` (zero-based); a page holding exactly
``settings.PAGE_SIZE`` articles is taken to mean another page may exist,
since the backend reports no total.  With a category it shows the whole
category in one list and offers no pagination.
"""
from datetime import datetime

from flashtrend.config import settings
from flashtrend.errors import ActorUnavailableError
from flashtrend.formatting import (
    category_badge,
    category_label,
    format_relative_time,
    share_text,
)
from flashtrend.queries import (
    ARTICLE_DETAIL,
    ARTICLES_BY_CATEGORY,
    PAGINATED_ARTICLES,
    SHARE_ARTICLE,
    QueryClient,
)
from flashtrend.schemas import ArticleCard, Category, FeedView, NewsArticle, ShareResponse

FEED_ERROR_NOTICE = "Failed to load articles. Please try again."


def article_card(article: NewsArticle, now: datetime | None = None) -> ArticleCard:
    return ArticleCard(
        article=article,
        badge=category_badge(article.category),
        relative_time=format_relative_time(article.created_at, now),
    )


def has_more_pages(articles: list) -> bool:
    return len(articles) == settings.PAGE_SIZE


async def get_feed(
    client: QueryClient,
    page: int = 0,
    category: Category | None = None,
    now: datetime | None = None,
) -> FeedView:
    """
    Build the feed view.  A failed load keeps whatever was cached before
    and carries ``FEED_ERROR_NOTICE``.
    """
    if category is None:
        result = await client.read(PAGINATED_ARTICLES, page)
    else:
        result = await client.read(ARTICLES_BY_CATEGORY, category)
        page = 0

    articles: list[NewsArticle] = result.data or []
    return FeedView(
        status=result.status,
        category=category,
        category_label=category_label(category),
        page=page,
        has_more=category is None and has_more_pages(articles),
        items=[article_card(a, now) for a in articles],
        notice=FEED_ERROR_NOTICE if result.is_error else None,
    )


async def get_article(client: QueryClient, article_id: int) -> NewsArticle:
    if not client.actor_state.ready:
        raise ActorUnavailableError()
    return await client.fetch(ARTICLE_DETAIL, article_id)


async def share_article(client: QueryClient, article_id: int) -> ShareResponse:
    """
    Record a share and return the text to copy.

    The article is read first so an unknown id fails before the share
    count is touched.
    """
    article = await get_article(client, article_id)
    await client.mutate(SHARE_ARTICLE, article_id)
    return ShareResponse(article_id=article.id, text=share_text(article))
