import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flashtrend.actor import ActorProvider, http_actor_factory
from flashtrend.backend import create_http_client
from flashtrend.cache import create_cache_store
from flashtrend.config import settings
from flashtrend.middleware import TimingMiddleware
from flashtrend.queries import QueryCache
from flashtrend.routers import admin, articles, auth, metrics, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    store = create_cache_store()
    await store.connect()
    http_client = create_http_client()
    app.state.query_cache = QueryCache(
        store=store,
        actors=ActorProvider(http_actor_factory(http_client)),
    )
    logger.info("Backend: %s, cache: %s", settings.BACKEND_URL, store.backend_name)
    yield
    # Shutdown
    await app.state.query_cache.close()
    await http_client.aclose()
    await store.disconnect()

app = FastAPI(
    title="FlashTrend",
    description="News feed front-end over the FlashTrend backend service",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(articles.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(auth.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
