from uuid import UUID
from fastapi import Depends, Header, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from reviews_api.core.config import settings
from reviews_api.db.mongo import get_mongo_db
from reviews_api.models.reviews import ViewerIdentity
from reviews_api.services.repositories.reviews_repo import MongoReviewsRepo
from reviews_api.services.repositories.viewed_repo import ViewedRepo
from reviews_api.services.repositories.watchlist_repo import WatchlistRepo
from reviews_api.services.review_feed import ReviewFeedController
from reviews_api.services.review_store import ReviewStore
from reviews_api.services.viewed_service import ViewedService
from reviews_api.services.watchlist_service import WatchlistService

# shared so that refresh-after-write reaches every open feed stream
_review_store: ReviewStore | None = None


def viewer_identity(
        x_user_id: str | None = Header(None, alias="X-User-Id"),
        x_user_name: str | None = Header(None, alias="X-User-Name"),
        x_user_avatar: str | None = Header(None, alias="X-User-Avatar"),
) -> ViewerIdentity | None:
    """Viewer from identity headers; None when no user id is sent."""
    if not x_user_id:
        return None
    try:
        user_id = str(UUID(x_user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid X-User-Id")
    return ViewerIdentity(id=user_id,
                          display_name=x_user_name or None,
                          avatar_url=x_user_avatar or None)


def require_viewer(
        viewer: ViewerIdentity | None = Depends(viewer_identity),
) -> ViewerIdentity:
    if viewer is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="authentication_required")
    return viewer


async def get_db() -> AsyncIOMotorDatabase:
    return await get_mongo_db()


async def get_review_store(db=Depends(get_db)) -> ReviewStore:
    global _review_store
    if _review_store is None:
        _review_store = ReviewStore(MongoReviewsRepo(db))
    return _review_store


def reset_review_store() -> None:
    """Cancel open feed subscriptions and drop the shared store."""
    global _review_store
    if _review_store is not None:
        _review_store.close()
    _review_store = None


async def get_review_feed(
        store: ReviewStore = Depends(get_review_store),
) -> ReviewFeedController:
    return ReviewFeedController(
        store, refresh_after_write=settings.refresh_after_write)


async def get_viewed_service(db=Depends(get_db)) -> ViewedService:
    return ViewedService(ViewedRepo(db))


async def get_watchlist_service(db=Depends(get_db)) -> WatchlistService:
    return WatchlistService(WatchlistRepo(db), ViewedRepo(db))
