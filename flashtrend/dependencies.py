from contextlib import contextmanager

from fastapi import Depends, HTTPException, Query, Request

from flashtrend.errors import ActorUnavailableError, RemoteCallError
from flashtrend.identity import Identity, identity_from_headers
from flashtrend.queries import QueryCache, QueryClient
from flashtrend.schemas import Category
from flashtrend.services import admin_service


def get_identity(request: Request) -> Identity | None:
    """The caller's identity as forwarded by the identity provider."""
    return identity_from_headers(request.headers)


def get_query_cache(request: Request) -> QueryCache:
    """
    The process-wide ``QueryCache`` created in the application lifespan.

    Tests override this dependency with a cache wired to a fake backend.
    """
    return request.app.state.query_cache


async def get_query_client(
    identity: Identity | None = Depends(get_identity),
    cache: QueryCache = Depends(get_query_cache),
) -> QueryClient:
    return await cache.client_for(identity)


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Please log in to view news articles.")
    return identity


async def require_admin(client: QueryClient = Depends(get_query_client)) -> QueryClient:
    """Admin-panel gate; yields the caller's client once access is granted."""
    gate = await admin_service.check_access(client)
    if gate.state == admin_service.AdminGate.granted.value:
        return client
    status = {
        admin_service.AdminGate.unauthenticated.value: 401,
        admin_service.AdminGate.loading.value: 503,
    }.get(gate.state, 403)
    raise HTTPException(status_code=status, detail=gate.message)


@contextmanager
def remote_errors():
    """Translate data-access failures into HTTP errors for the caller."""
    try:
        yield
    except ActorUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.message)
    except RemoteCallError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


class FeedParams:
    """
    Reusable FastAPI dependency that parses the feed query parameters.

    Attributes
    ----------
    page:
        Zero-based page index.  Ignored when *category* is set.
    category:
        Restrict the feed to one category; ``None`` (or ``all``) shows
        the paginated feed.
    """

    def __init__(
        self,
        page: int = Query(
            0,
            ge=0,
            description="Page index (0-based).",
        ),
        category: str | None = Query(
            None,
            pattern="^(all|social|viral|trending|politics)$",
            description="Category filter: 'all' or one of the four categories.",
        ),
    ) -> None:
        self.page = page
        self.category = None if category in (None, "all") else Category(category)
