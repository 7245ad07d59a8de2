"""Seed demo reviews with random reactions for a few movies."""

from __future__ import annotations

import asyncio
import os
import random
import time
import uuid

from reviews_api.db.mongo import close_client, get_mongo_db
from reviews_api.models.reviews import ReactionSymbol
from reviews_api.services.repositories.reviews_repo import MongoReviewsRepo

MOVIE_IDS = [int(x) for x in os.getenv("MOVIE_IDS", "550,603,27205").split(",")]
REVIEWS_PER_MOVIE = int(os.getenv("REVIEWS_PER_MOVIE", "20"))
USERS_POOL = int(os.getenv("USERS_POOL", "50"))
MAX_REACTIONS = int(os.getenv("MAX_REACTIONS", "15"))

SAMPLE_TEXTS = [
    "Loved every minute of it.",
    "Great cast, weak ending.",
    "Not my kind of film, but well made.",
    "Rewatched it twice this week.",
    "Overrated.",
]


async def main() -> None:
    repo = MongoReviewsRepo(await get_mongo_db())
    users = [str(uuid.uuid4()) for _ in range(USERS_POOL)]
    symbols = list(ReactionSymbol)
    now_ms = int(time.time() * 1000)

    t0 = time.perf_counter()
    total = 0
    for movie_id in MOVIE_IDS:
        for i in range(REVIEWS_PER_MOVIE):
            author = random.choice(users)
            reactors = random.sample(users, random.randint(0, MAX_REACTIONS))
            await repo.push_review(movie_id, {
                "movie_title": f"Movie {movie_id}",
                "author_id": author,
                "author_display_name": f"user-{author[:8]}",
                "author_avatar_url": "",
                "content": random.choice(SAMPLE_TEXTS),
                "rating": random.randint(1, 10),
                "created_at": now_ms - i * 60_000,
                "reactions": {u: random.choice(symbols).value
                              for u in reactors},
            })
            total += 1
    await close_client()
    print(f"[seed] reviews={total} took={time.perf_counter() - t0:.2f}s")


if __name__ == "__main__":
    asyncio.run(main())
