from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase

SORT_FIELDS = {
    "date": "release_date",
    "rating": "vote_average",
}


class WatchlistRepo:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db["watchlist"]

    async def ensure_indexes(self) -> None:
        await self.col.create_index(
            [("user_id", 1), ("movie_id", 1)], unique=True,
            name="watchlist_user_movie")

    async def upsert(self, user_id: str, movie: Dict[str, Any]) -> bool:
        """
        Refresh the movie snapshot; True when the entry is new.
        """
        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        snapshot = {k: v for k, v in movie.items() if k != "id"}
        res = await self.col.update_one(
            {"user_id": user_id, "movie_id": movie["id"]},
            {"$set": snapshot, "$setOnInsert": {"added_at": now_ms}},
            upsert=True,
        )
        return res.upserted_id is not None

    async def delete(self, user_id: str, movie_id: int) -> bool:
        res = await self.col.delete_one(
            {"user_id": user_id, "movie_id": movie_id})
        return res.deleted_count == 1

    async def list_by_user(
            self,
            user_id: str,
            sort: str = "date",
            movie_ids: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"user_id": user_id}
        if movie_ids is not None:
            query["movie_id"] = {"$in": list(movie_ids)}
        # missing dates/scores sort lowest, i.e. last in descending order
        cur = (self.col.find(query, {"_id": 0, "user_id": 0})
               .sort([(SORT_FIELDS[sort], -1), ("added_at", -1)]))
        return [d async for d in cur]
