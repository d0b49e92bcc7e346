from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from flashtrend.config import settings


# --- Enumerations ---

class Category(str, Enum):
    social = "social"
    viral = "viral"
    trending = "trending"
    politics = "politics"


class UserRole(str, Enum):
    admin = "admin"
    user = "user"
    guest = "guest"


# --- Remote entities ---

class NewsArticle(BaseModel):
    id: int = Field(ge=0)
    title: str
    creator: str
    source: str
    summary: str
    share_count: int = Field(
        0, ge=0, validation_alias=AliasChoices("share_count", "shareCount")
    )
    timestamp: int  # nanoseconds since the Unix epoch
    category: Category

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1_000_000_000, tz=timezone.utc)


class UserProfile(BaseModel):
    name: str


# --- Forms ---

def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Please fill in all fields")
    return value


class ArticleForm(BaseModel):
    """
    Create / update payload for the admin panel.

    The summary length is measured on the raw input, then every text
    field is trimmed.
    """

    title: str
    summary: str
    category: Category
    source: str

    @field_validator("title", "source")
    @classmethod
    def _required(cls, value: str) -> str:
        return _required_text(value)

    @field_validator("summary")
    @classmethod
    def _summary(cls, value: str) -> str:
        if len(value) > settings.MAX_SUMMARY_LENGTH:
            raise ValueError(
                f"Summary must be {settings.MAX_SUMMARY_LENGTH} characters or less"
            )
        return _required_text(value)


class ProfileForm(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your name")
        return value


class RoleAssignment(BaseModel):
    principal: str = Field(min_length=1)
    role: UserRole


# --- Query results ---

class QueryStatus(str, Enum):
    disabled = "disabled"
    pending = "pending"
    success = "success"
    error = "error"


class QueryResult(BaseModel):
    """Outcome of reading a query binding, as consumed by the view layer."""

    status: QueryStatus
    data: Any = None
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status in (QueryStatus.disabled, QueryStatus.pending)

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.error


# --- View models ---

class ArticleCard(BaseModel):
    article: NewsArticle
    badge: str
    relative_time: str


class FeedView(BaseModel):
    status: QueryStatus
    category: Category | None = None
    category_label: str = "All"
    page: int = 0
    has_more: bool = False
    items: list[ArticleCard] = []
    notice: str | None = None


class ShareResponse(BaseModel):
    article_id: int
    text: str


class CreatedResponse(BaseModel):
    id: int


class SessionView(BaseModel):
    authenticated: bool
    principal: str | None = None
    profile: UserProfile | None = None
    is_admin: bool = False
    needs_profile_setup: bool = False


class AdminGateView(BaseModel):
    state: str
    message: str | None = None


# --- Metrics ---

class MetricsResponse(BaseModel):
    sessions: int
    cache_info: dict = {}
