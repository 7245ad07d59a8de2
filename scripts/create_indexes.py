import asyncio

from reviews_api.core.config import settings
from reviews_api.db.mongo import close_client, get_mongo_db
from reviews_api.services.repositories.reviews_repo import MongoReviewsRepo
from reviews_api.services.repositories.viewed_repo import ViewedRepo
from reviews_api.services.repositories.watchlist_repo import WatchlistRepo


async def main():
    db = await get_mongo_db()
    print("Using DSN:", settings.mongo_dsn, "DB:", settings.mongo_db)

    for repo in (MongoReviewsRepo(db), WatchlistRepo(db), ViewedRepo(db)):
        await repo.ensure_indexes()
        print("indexes ok:", repo.col.name)

    await close_client()


if __name__ == "__main__":
    asyncio.run(main())
