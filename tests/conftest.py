import os

os.environ.setdefault("MONGO_DSN", "mongodb://localhost:27017/movie_reviews_test")
os.environ.setdefault("MONGO_PING_ON_STARTUP", "false")
os.environ.setdefault("SENTRY_DSN", "")

import pytest  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from asgi_lifespan import LifespanManager  # noqa: E402

from reviews_api.main import app  # noqa: E402
from reviews_api.dependencies import get_review_store  # noqa: E402
from reviews_api.services.review_feed import ReviewFeedController  # noqa: E402
from reviews_api.services.review_store import ReviewStore  # noqa: E402
from tests.fakes import InMemoryReviewsBackend  # noqa: E402


@pytest.fixture
def backend() -> InMemoryReviewsBackend:
    return InMemoryReviewsBackend()


@pytest.fixture
def store(backend) -> ReviewStore:
    return ReviewStore(backend)


@pytest.fixture
def feed(store) -> ReviewFeedController:
    ticks = iter(range(1_000, 1_000_000, 10))
    return ReviewFeedController(store, clock=lambda: next(ticks))


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_review_store] = lambda: store
    try:
        async with LifespanManager(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport,
                                   base_url="http://test") as ac:
                yield ac
    finally:
        app.dependency_overrides.clear()
