from http import HTTPStatus
from fastapi import APIRouter, Depends, Query

from reviews_api.api.http_utils import handle_domain_errors
from reviews_api.core.config import settings
from reviews_api.dependencies import get_review_feed, viewer_identity
from reviews_api.models.reviews import ReviewFeedResponse, ViewerIdentity
from reviews_api.services.review_feed import ReviewFeedController

router = APIRouter(prefix="/api/v1/reviews", tags=["reviews"])


@router.get("", response_model=ReviewFeedResponse, status_code=HTTPStatus.OK)
@handle_domain_errors()
async def list_public_reviews(
    limit: int | None = Query(None, ge=1, le=500),
    viewer: ViewerIdentity | None = Depends(viewer_identity),
    feed: ReviewFeedController = Depends(get_review_feed),
) -> ReviewFeedResponse:
    items = await feed.public_feed(viewer,
                                   limit=limit or settings.public_feed_limit)
    return ReviewFeedResponse(items=items, total=len(items))
