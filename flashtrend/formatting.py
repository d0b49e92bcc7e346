"""Presentation helpers shared by the view services."""
from datetime import datetime, timezone

from flashtrend.schemas import Category, NewsArticle

CATEGORY_LABELS: dict[Category, str] = {
    Category.politics: "Politics",
    Category.viral: "Viral",
    Category.trending: "Trending",
    Category.social: "Social",
}


def category_label(category: Category | None) -> str:
    """Tab label for a feed filter; ``None`` is the unfiltered feed."""
    return "All" if category is None else CATEGORY_LABELS[Category(category)]


def category_badge(category: Category) -> str:
    return Category(category).value.upper()


def share_text(article: NewsArticle) -> str:
    """Text placed on the clipboard when an article is shared."""
    return f"{article.title}\n\n{article.summary}\n\nSource: {article.source}"


def format_relative_time(created_at: datetime, now: datetime | None = None) -> str:
    """
    Render *created_at* relative to *now*: ``Just now``, ``5m ago``,
    ``3h ago``, ``2d ago``, then a plain date after a week.
    """
    now = now or datetime.now(timezone.utc)
    seconds = int((now - created_at).total_seconds())
    if seconds < 60:
        return "Just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return created_at.strftime("%b %d, %Y")
