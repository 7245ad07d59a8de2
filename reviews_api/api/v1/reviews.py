import logging
from http import HTTPStatus
from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import StreamingResponse

from reviews_api.core.errors import ReviewsError
from reviews_api.dependencies import (
    get_review_feed,
    require_viewer,
    viewer_identity,
)
from reviews_api.services.review_feed import ReviewFeedController
from reviews_api.models.reviews import (
    ReactionToggleRequest, ReactionToggleResponse,
    ReviewCreateRequest, ReviewCreateResponse,
    ReviewFeedResponse, ViewerIdentity,
)
from reviews_api.api.http_utils import handle_domain_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/movies", tags=["reviews"])


@router.get("/{movie_id}/reviews", response_model=ReviewFeedResponse,
            status_code=HTTPStatus.OK)
@handle_domain_errors()
async def list_movie_reviews(
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity | None = Depends(viewer_identity),
    feed: ReviewFeedController = Depends(get_review_feed),
):
    items = await feed.current_feed(movie_id, viewer)
    return ReviewFeedResponse(movie_id=movie_id, items=items,
                              total=len(items))


@router.get("/{movie_id}/reviews/stream", status_code=HTTPStatus.OK)
async def stream_movie_reviews(
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity | None = Depends(viewer_identity),
    feed: ReviewFeedController = Depends(get_review_feed),
):
    """Live feed as NDJSON: one full sorted snapshot per line."""

    async def lines():
        snapshots = feed.reviews_for_movie(movie_id, viewer)
        try:
            async for items in snapshots:
                yield ReviewFeedResponse(
                    movie_id=movie_id, items=items, total=len(items),
                ).model_dump_json() + "\n"
        except ReviewsError as e:
            # headers are gone already; end the stream and log
            logger.error("review_stream_failed",
                         extra={"movie_id": movie_id, "err": str(e)})
        finally:
            await snapshots.aclose()

    return StreamingResponse(lines(), media_type="application/x-ndjson")


@router.post("/{movie_id}/reviews", response_model=ReviewCreateResponse,
             status_code=HTTPStatus.CREATED)
@handle_domain_errors()
async def submit_review(
    body: ReviewCreateRequest,
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    feed: ReviewFeedController = Depends(get_review_feed),
):
    if body.movie.id != movie_id:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                            detail="movie_id_mismatch")
    review_id = await feed.submit_review(movie_id=movie_id,
                                         movie=body.movie,
                                         content=body.content,
                                         rating=body.rating,
                                         viewer=viewer)
    return ReviewCreateResponse(review_id=review_id)


@router.post("/{movie_id}/reviews/{review_id}/reactions",
             response_model=ReactionToggleResponse,
             status_code=HTTPStatus.OK)
@handle_domain_errors()
async def toggle_review_reaction(
    review_id: str,
    body: ReactionToggleRequest,
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    feed: ReviewFeedController = Depends(get_review_feed),
):
    reaction = await feed.react(movie_id=movie_id,
                                review_id=review_id,
                                symbol=body.symbol,
                                viewer=viewer)
    return ReactionToggleResponse(review_id=review_id, reaction=reaction)
