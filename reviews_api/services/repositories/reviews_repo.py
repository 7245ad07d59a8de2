"""Mongo-backed review storage and change feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from reviews_api.core.errors import ReviewNotFound, StoreUnavailable
from reviews_api.models.reviews import ReactionSymbol
from reviews_api.services.push_ids import generate_push_id

logger = logging.getLogger(__name__)

REACTIONS_KEY = 'reactions'


class MongoReviewsRepo:
    """One document per review; ``_id`` is the push id.

    Reactions live in an embedded ``reactions`` map keyed by user id, so
    setting or clearing one user's reaction is a single-field update.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.col = db['reviews']

    async def ensure_indexes(self) -> None:
        """Index the per-movie feed query and the public feed ordering."""
        await self.col.create_index(
            [('movie_id', 1), ('created_at', -1)],
            name='reviews_movie_created_desc',
        )
        await self.col.create_index(
            [('created_at', -1)], name='reviews_created_desc')

    # ---------- READ ----------

    async def fetch_reviews(self, movie_id: int) -> Dict[str, Dict[str, Any]]:
        """All raw records of a movie keyed by review id."""
        try:
            records: Dict[str, Dict[str, Any]] = {}
            async for doc in self.col.find({'movie_id': movie_id}):
                records[str(doc.pop('_id'))] = doc
            return records
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_review_list_error: {error}') from error

    async def fetch_all_reviews(
        self,
        limit: Optional[int] = None,
    ) -> Dict[int, Dict[str, Dict[str, Any]]]:
        """Newest reviews of every movie, grouped by movie id."""
        cursor = self.col.find({}).sort([('created_at', -1), ('_id', -1)])
        if limit is not None:
            cursor = cursor.limit(limit)
        try:
            grouped: Dict[int, Dict[str, Dict[str, Any]]] = {}
            async for doc in cursor:
                movie_id = doc.get('movie_id')
                if movie_id is None:
                    continue
                grouped.setdefault(movie_id, {})[str(doc.pop('_id'))] = doc
            return grouped
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_review_list_error: {error}') from error

    async def read_reaction(
        self,
        movie_id: int,
        review_id: str,
        user_id: str,
    ) -> Optional[str]:
        """Point read of one user's reaction (projection only)."""
        try:
            doc = await self.col.find_one(
                {'_id': review_id, 'movie_id': movie_id},
                {f'{REACTIONS_KEY}.{user_id}': 1},
            )
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_reaction_read_error: {error}') from error
        if doc is None:
            raise ReviewNotFound(review_id)
        return (doc.get(REACTIONS_KEY) or {}).get(user_id)

    # ---------- WRITE ----------

    async def push_review(self, movie_id: int, record: Dict[str, Any]) -> str:
        """Insert a new review under a fresh push id and return the id."""
        review_id = generate_push_id(record.get('created_at'))
        doc = {**record, '_id': review_id, 'movie_id': movie_id}
        doc.setdefault(REACTIONS_KEY, {})
        try:
            await self.col.insert_one(doc)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_review_create_error: {error}') from error
        return review_id

    async def write_reaction(
        self,
        movie_id: int,
        review_id: str,
        user_id: str,
        symbol: Optional[ReactionSymbol],
    ) -> None:
        """Set or clear (``symbol=None``) one user's reaction."""
        field = f'{REACTIONS_KEY}.{user_id}'
        if symbol is None:
            update = {'$unset': {field: ''}}
        else:
            update = {'$set': {field: ReactionSymbol(symbol).value}}
        try:
            result = await self.col.update_one(
                {'_id': review_id, 'movie_id': movie_id}, update)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_reaction_write_error: {error}') from error
        if result.matched_count != 1:
            raise ReviewNotFound(review_id)

    # ---------- LIVE FEED ----------

    def subscribe_reviews(
        self,
        movie_id: int,
        on_change: Callable[[Dict[str, Dict[str, Any]]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        """Watch a movie's reviews; returns an unsubscribe callable.

        The change stream is opened before the first read so nothing
        written in between is missed. Every change triggers a full
        re-read, so listeners only ever see complete snapshots.
        """
        task = asyncio.get_running_loop().create_task(
            self._watch(movie_id, on_change, on_error),
            name=f'reviews-watch-{movie_id}',
        )

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _watch(self, movie_id, on_change, on_error) -> None:
        pipeline = [{'$match': {'$or': [
            {'fullDocument.movie_id': movie_id},
            # deletes carry no document; re-read to be safe
            {'operationType': 'delete'},
        ]}}]
        try:
            async with self.col.watch(
                    pipeline, full_document='updateLookup') as stream:
                on_change(await self.fetch_reviews(movie_id))
                async for _change in stream:
                    on_change(await self.fetch_reviews(movie_id))
        except PyMongoError as error:
            wrapped = StoreUnavailable(f'mongo_review_watch_error: {error}')
            wrapped.__cause__ = error
            self._report(movie_id, wrapped, on_error)
        except StoreUnavailable as error:
            self._report(movie_id, error, on_error)

    @staticmethod
    def _report(movie_id, error, on_error) -> None:
        if on_error is not None:
            on_error(error)
        else:
            logger.error(
                'review_watch_failed',
                extra={'movie_id': movie_id, 'err': str(error)})
