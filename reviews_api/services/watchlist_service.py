"""Service layer for the user's watchlist."""

from __future__ import annotations

from pymongo.errors import PyMongoError

from reviews_api.core.errors import StoreUnavailable
from reviews_api.models.reviews import MovieSnapshot
from reviews_api.models.watchlist import (
    WatchlistDeleteResponse,
    WatchlistItem,
    WatchlistPutResponse,
    WatchlistResponse,
    WatchlistSort,
)
from .repositories.viewed_repo import ViewedRepo
from .repositories.watchlist_repo import WatchlistRepo


class WatchlistService:
    """Add, remove and list movies the user wants to watch."""

    def __init__(self, repo: WatchlistRepo, viewed_repo: ViewedRepo) -> None:
        self.repo = repo
        self.viewed_repo = viewed_repo

    async def add(
        self,
        user_id: str,
        movie: MovieSnapshot,
    ) -> WatchlistPutResponse:
        """Add a movie, or refresh its stored snapshot if already there."""
        try:
            created = await self.repo.upsert(
                user_id=user_id,
                movie=movie.model_dump(),
            )
            return WatchlistPutResponse(ok=True, created=created)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_watchlist_add_error: {error}') from error

    async def remove(
        self,
        user_id: str,
        movie_id: int,
    ) -> WatchlistDeleteResponse:
        try:
            deleted = await self.repo.delete(
                user_id=user_id,
                movie_id=movie_id,
            )
            return WatchlistDeleteResponse(ok=True, deleted=deleted)
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_watchlist_remove_error: {error}') from error

    async def list(
        self,
        user_id: str,
        sort: WatchlistSort = WatchlistSort.date,
        only_viewed: bool = False,
    ) -> WatchlistResponse:
        """List the watchlist by release date or score, newest/best first."""
        try:
            viewed_ids = set(await self.viewed_repo.list_movie_ids(user_id))
            docs = await self.repo.list_by_user(
                user_id=user_id,
                sort=WatchlistSort(sort).value,
                movie_ids=sorted(viewed_ids) if only_viewed else None,
            )
        except PyMongoError as error:
            raise StoreUnavailable(
                f'mongo_watchlist_list_error: {error}') from error
        items = [
            WatchlistItem(
                id=doc['movie_id'],
                viewed=doc['movie_id'] in viewed_ids,
                **{k: v for k, v in doc.items() if k != 'movie_id'},
            )
            for doc in docs
        ]
        return WatchlistResponse(items=items, total=len(items))
