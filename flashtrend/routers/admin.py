from fastapi import APIRouter, Depends

from flashtrend.dependencies import get_query_client, remote_errors, require_admin
from flashtrend.queries import QueryClient
from flashtrend.schemas import (
    AdminGateView,
    ArticleForm,
    CreatedResponse,
    NewsArticle,
    RoleAssignment,
)
from flashtrend.services import admin_service

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

@router.get("", response_model=AdminGateView)
async def get_gate(client: QueryClient = Depends(get_query_client)):
    return await admin_service.check_access(client)

@router.post("/articles", status_code=201, response_model=CreatedResponse)
async def create_article(form: ArticleForm, client: QueryClient = Depends(require_admin)):
    with remote_errors():
        article_id = await admin_service.create_article(client, form)
    return CreatedResponse(id=article_id)

@router.put("/articles/{article_id}", response_model=NewsArticle)
async def update_article(
    article_id: int, form: ArticleForm, client: QueryClient = Depends(require_admin)
):
    with remote_errors():
        return await admin_service.update_article(client, article_id, form)

@router.delete("/articles/{article_id}", status_code=204)
async def delete_article(article_id: int, client: QueryClient = Depends(require_admin)):
    with remote_errors():
        await admin_service.delete_article(client, article_id)

@router.post("/roles", status_code=204)
async def assign_role(assignment: RoleAssignment, client: QueryClient = Depends(require_admin)):
    with remote_errors():
        await admin_service.assign_role(client, assignment)
