from pymongo import MongoClient
from reviews_api.core.config import settings

COLLECTIONS = ("reviews", "watchlist", "viewed")


def main():
    db = MongoClient(settings.mongo_dsn)[settings.mongo_db]
    for name in COLLECTIONS:
        print(f"== {name}")
        for idx in db[name].list_indexes():
            print("  ", idx["name"], dict(idx["key"]))


if __name__ == "__main__":
    main()
