"""Ordered, reaction-annotated review feed plus review/reaction writes."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Iterable, List, Optional

from reviews_api.core.errors import (
    AuthenticationRequired,
    ReviewValidationError,
)
from reviews_api.models.reviews import (
    ANONYMOUS,
    MAX_REVIEW_RATING,
    MIN_REVIEW_RATING,
    FeedEntry,
    MovieSnapshot,
    ReactionSymbol,
    Review,
    ViewerIdentity,
)
from reviews_api.services.reactions import summarize, toggle_reaction
from reviews_api.services.review_store import ReviewStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def sort_reviews(reviews: Iterable[Review]) -> List[Review]:
    """Newest first; equal timestamps fall back to the push id."""
    return sorted(reviews, key=lambda r: (r.created_at, r.id), reverse=True)


def validate_review(content: str, rating: int) -> str:
    """Return the trimmed content or raise ``ReviewValidationError``."""
    text = content.strip() if isinstance(content, str) else ""
    if not text:
        raise ReviewValidationError("content", "review text is empty")
    if (isinstance(rating, bool) or not isinstance(rating, int)
            or not MIN_REVIEW_RATING <= rating <= MAX_REVIEW_RATING):
        raise ReviewValidationError(
            "rating",
            f"rating must be between {MIN_REVIEW_RATING} "
            f"and {MAX_REVIEW_RATING}")
    return text


def _viewer_id(viewer: Optional[ViewerIdentity]) -> Optional[str]:
    return viewer.id if viewer is not None else None


class ReviewFeedController:
    """Feed for one or all movies, annotated for a given viewer.

    Writes never touch the feed directly: new reviews and reactions come
    back through the store subscription. With ``refresh_after_write`` the
    controller also re-reads the movie's reviews for live subscribers
    right after a successful write.
    """

    def __init__(
            self,
            store: ReviewStore,
            refresh_after_write: bool = True,
            clock: Callable[[], int] = now_ms) -> None:
        self.store = store
        self.refresh_after_write = refresh_after_write
        self.clock = clock

    @staticmethod
    def annotate(
            reviews: Iterable[Review],
            viewer: Optional[ViewerIdentity]) -> List[FeedEntry]:
        viewer_id = _viewer_id(viewer)
        return [
            FeedEntry(review=review,
                      summary=summarize(review.reactions, viewer_id))
            for review in sort_reviews(reviews)
        ]

    # ---------- READ ----------

    async def reviews_for_movie(
            self,
            movie_id: int,
            viewer: Optional[ViewerIdentity] = None,
    ) -> AsyncIterator[List[FeedEntry]]:
        """Yield the full sorted feed now and after every change.

        Never ends on its own; closing the iterator cancels the store
        subscription. Store failures are raised to the consumer. A slow
        consumer only ever gets the newest pending snapshot.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)

        def offer(item) -> None:
            if queue.full():
                pending = queue.get_nowait()
                if isinstance(pending, Exception):
                    # a pending failure is never replaced
                    queue.put_nowait(pending)
                    return
            queue.put_nowait(item)

        subscription = self.store.subscribe(
            movie_id, offer, on_error=offer)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, Exception):
                    raise item
                yield self.annotate(item, viewer)
        finally:
            subscription.cancel()

    async def current_feed(
            self,
            movie_id: int,
            viewer: Optional[ViewerIdentity] = None) -> List[FeedEntry]:
        return self.annotate(await self.store.snapshot(movie_id), viewer)

    async def public_feed(
            self,
            viewer: Optional[ViewerIdentity] = None,
            limit: Optional[int] = None) -> List[FeedEntry]:
        """Every review of every movie, newest first."""
        entries = self.annotate(await self.store.all_reviews(limit), viewer)
        return entries if limit is None else entries[:limit]

    # ---------- WRITE ----------

    async def submit_review(
            self,
            movie_id: int,
            movie: MovieSnapshot,
            content: str,
            rating: int,
            viewer: Optional[ViewerIdentity]) -> str:
        """Store a new review and return its id."""
        if viewer is None:
            raise AuthenticationRequired("sign in to write a review")
        text = validate_review(content, rating)

        record = {
            "movie_title": movie.title,
            "author_id": viewer.id,
            "author_display_name": viewer.display_name or ANONYMOUS,
            "author_avatar_url": viewer.avatar_url or "",
            "content": text,
            "rating": rating,
            "created_at": self.clock(),
            "reactions": {},
        }
        review_id = await self.store.backend.push_review(movie_id, record)
        logger.info(
            "review_submitted",
            extra={"movie_id": movie_id, "review_id": review_id,
                   "user_id": viewer.id, "rating": rating},
        )
        await self._after_write(movie_id)
        return review_id

    async def react(
            self,
            movie_id: int,
            review_id: str,
            symbol: ReactionSymbol,
            viewer: Optional[ViewerIdentity]) -> Optional[ReactionSymbol]:
        """Toggle the viewer's reaction; returns what they hold afterwards."""
        if viewer is None:
            raise AuthenticationRequired("sign in to react to reviews")
        reaction = await toggle_reaction(
            self.store.backend, movie_id, review_id, viewer.id, symbol)
        await self._after_write(movie_id)
        return reaction

    async def _after_write(self, movie_id: int) -> None:
        if self.refresh_after_write:
            await self.store.refresh(movie_id)
