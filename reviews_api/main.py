import logging

from fastapi import FastAPI

from contextlib import asynccontextmanager
from reviews_api.db.mongo import get_client, close_client

from reviews_api.core.logger import setup_json_logging, shutdown_logging
from reviews_api.core.sentry import init_sentry
from reviews_api.core.config import settings
from reviews_api.core.middleware import RequestContextMiddleware
from reviews_api.dependencies import reset_review_store

from reviews_api.api.v1.reviews import router as reviews_router
from reviews_api.api.v1.public_reviews import router as public_reviews_router
from reviews_api.api.v1.watchlist import router as watchlist_router
from reviews_api.api.v1.viewed import router as viewed_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # logging first, everything below may log
    setup_json_logging(service=settings.app_name)
    init_sentry(settings.sentry_dsn, environment=settings.env)

    await get_client()

    try:
        yield
    finally:
        # cancel open feed subscriptions before the client goes away
        reset_review_store()
        await close_client()
        shutdown_logging()


app = FastAPI(title="Movie Reviews Service", lifespan=lifespan)

app.add_middleware(RequestContextMiddleware)

# our access log replaces uvicorn's
logging.getLogger("uvicorn.access").setLevel("WARNING")


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(reviews_router)
app.include_router(public_reviews_router)
app.include_router(watchlist_router)
app.include_router(viewed_router)
