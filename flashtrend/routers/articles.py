from fastapi import APIRouter, Depends

from flashtrend.dependencies import FeedParams, get_query_client, remote_errors, require_identity
from flashtrend.queries import QueryClient
from flashtrend.schemas import FeedView, NewsArticle, ShareResponse
from flashtrend.services import feed_service

router = APIRouter(
    prefix="/api/v1/articles",
    tags=["articles"],
    dependencies=[Depends(require_identity)],
)

@router.get("", response_model=FeedView)
async def list_articles(
    params: FeedParams = Depends(),
    client: QueryClient = Depends(get_query_client),
):
    return await feed_service.get_feed(client, params.page, params.category)

@router.get("/{article_id}", response_model=NewsArticle)
async def get_article(article_id: int, client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return await feed_service.get_article(client, article_id)

@router.post("/{article_id}/share", response_model=ShareResponse)
async def share_article(article_id: int, client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return await feed_service.share_article(client, article_id)
