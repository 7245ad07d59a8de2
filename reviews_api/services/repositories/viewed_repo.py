"""Mongo repository for viewed marks."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase


class ViewedRepo:
    """One document per (user, movie) the user has marked as viewed."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.col = db['viewed']

    async def ensure_indexes(self) -> None:
        await self.col.create_index(
            [('user_id', 1), ('movie_id', 1)],
            unique=True,
            name='viewed_user_movie',
        )

    async def replace(
        self,
        user_id: str,
        movie_id: int,
        mark: Dict[str, Any],
    ) -> None:
        """Overwrite the whole mark, so marking without a rating drops it."""
        await self.col.replace_one(
            {'user_id': user_id, 'movie_id': movie_id},
            {**mark, 'user_id': user_id, 'movie_id': movie_id},
            upsert=True,
        )

    async def find_user_movie(
        self,
        user_id: str,
        movie_id: int,
    ) -> Optional[Dict[str, Any]]:
        return await self.col.find_one(
            {'user_id': user_id, 'movie_id': movie_id},
            {'_id': 0, 'user_id': 0},
        )

    async def delete(self, user_id: str, movie_id: int) -> bool:
        result = await self.col.delete_one(
            {'user_id': user_id, 'movie_id': movie_id},
        )
        return result.deleted_count == 1

    async def list_movie_ids(self, user_id: str) -> List[int]:
        """Viewed movie ids, most recently marked first."""
        cursor = (
            self.col.find({'user_id': user_id}, {'_id': 0, 'movie_id': 1})
            .sort('timestamp', -1)
        )
        return [int(doc['movie_id']) async for doc in cursor]
