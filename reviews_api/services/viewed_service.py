"""Service layer for "mark as viewed" with an optional 1-5 quick rating."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pymongo.errors import PyMongoError

from reviews_api.core.errors import ReviewValidationError, StoreUnavailable
from reviews_api.models.viewed import (
    MAX_QUICK_RATING,
    MIN_QUICK_RATING,
    ViewedListResponse,
    ViewedMark,
)
from .repositories.viewed_repo import ViewedRepo

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ViewedService:
    """Viewed marks; the quick rating is unrelated to review ratings."""

    def __init__(
        self,
        repo: ViewedRepo,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.repo = repo
        self.clock = clock

    # ---------- CREATE / UPDATE ----------

    async def mark_viewed(
        self,
        user_id: str,
        movie_id: int,
        rating: Optional[int] = None,
    ) -> ViewedMark:
        """Mark as viewed; a mark without rating clears an earlier one."""
        if rating is not None and (
                isinstance(rating, bool)
                or not MIN_QUICK_RATING <= rating <= MAX_QUICK_RATING):
            raise ReviewValidationError(
                'rating',
                f'quick rating must be between {MIN_QUICK_RATING} '
                f'and {MAX_QUICK_RATING}',
            )
        mark = ViewedMark(
            movie_id=movie_id,
            rating=rating,
            timestamp=self.clock(),
        )
        doc = mark.model_dump(exclude={'movie_id'}, exclude_none=True)
        try:
            await self.repo.replace(user_id, movie_id, doc)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_viewed_set_error: {error}') from error
        logger.info(
            'movie_marked_viewed',
            extra={'movie_id': movie_id, 'user_id': user_id,
                   'rating': rating},
        )
        return mark

    # ---------- READ ----------

    async def get(self, user_id: str, movie_id: int) -> Optional[ViewedMark]:
        try:
            doc = await self.repo.find_user_movie(user_id, movie_id)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_viewed_get_error: {error}') from error
        if doc is None:
            return None
        return ViewedMark(**{**doc, 'movie_id': movie_id})

    async def viewed_ids(self, user_id: str) -> ViewedListResponse:
        try:
            ids = await self.repo.list_movie_ids(user_id)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_viewed_list_error: {error}') from error
        return ViewedListResponse(movie_ids=ids, total=len(ids))

    # ---------- DELETE ----------

    async def remove(self, user_id: str, movie_id: int) -> bool:
        try:
            return await self.repo.delete(user_id, movie_id)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_viewed_remove_error: {error}') from error
