import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blog_api.config import settings
from blog_api.middleware import RequestStatsMiddleware
from blog_api.responses import install_exception_handlers
from blog_api.routers import auth, categories, comments, posts, profile

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting blog API (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="Blog API",
    description="Blogging platform: accounts, JWT sessions, categories, posts and threaded comments",
    version="1.0.0",
    lifespan=lifespan,
)

install_exception_handlers(app)

# Middleware
app.add_middleware(RequestStatsMiddleware)
app.add_middleware(
    CORSMiddleware,
    # The refresh-token cookie needs credentials, so origins must be explicit.
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(categories.router)
app.include_router(profile.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
