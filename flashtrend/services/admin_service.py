"""
Admin service: the role-gated article management panel.

Access is decided from the cached ``isAdmin`` query.  The backend runs
its own role checks on every mutation, so the gate only decides what the
panel shows; it is not a security boundary.
"""
from enum import Enum

from flashtrend.queries import (
    ASSIGN_ROLE,
    CREATE_ARTICLE,
    DELETE_ARTICLE,
    IS_ADMIN,
    UPDATE_ARTICLE,
    QueryClient,
)
from flashtrend.schemas import (
    AdminGateView,
    ArticleForm,
    NewsArticle,
    QueryStatus,
    RoleAssignment,
)


class AdminGate(str, Enum):
    unauthenticated = "unauthenticated"
    loading = "loading"
    denied = "denied"
    granted = "granted"


GATE_MESSAGES: dict[AdminGate, str] = {
    AdminGate.unauthenticated: "Please log in to access the admin panel.",
    AdminGate.loading: "Checking permissions, please try again shortly.",
    AdminGate.denied: "You do not have permission to access the admin panel.",
}


async def check_access(client: QueryClient) -> AdminGateView:
    if client.identity is None:
        gate = AdminGate.unauthenticated
    else:
        result = await client.read(IS_ADMIN)
        if result.status in (QueryStatus.disabled, QueryStatus.pending):
            gate = AdminGate.loading
        elif result.data:
            gate = AdminGate.granted
        else:
            gate = AdminGate.denied
    return AdminGateView(state=gate.value, message=GATE_MESSAGES.get(gate))


async def create_article(client: QueryClient, form: ArticleForm) -> int:
    return await client.mutate(
        CREATE_ARTICLE, form.title, form.summary, form.category, form.source
    )


async def update_article(
    client: QueryClient, article_id: int, form: ArticleForm
) -> NewsArticle:
    return await client.mutate(
        UPDATE_ARTICLE, article_id, form.title, form.summary, form.category, form.source
    )


async def delete_article(client: QueryClient, article_id: int) -> None:
    await client.mutate(DELETE_ARTICLE, article_id)


async def assign_role(client: QueryClient, assignment: RoleAssignment) -> None:
    await client.mutate(ASSIGN_ROLE, assignment.principal, assignment.role)
