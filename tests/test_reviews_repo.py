"""Mongo review repository against a mocked collection."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

from reviews_api.core.errors import ReviewNotFound, StoreUnavailable
from reviews_api.models.reviews import ReactionSymbol
from reviews_api.services.repositories.reviews_repo import MongoReviewsRepo


@pytest.fixture
def col():
    return AsyncMock()


@pytest.fixture
def repo(col) -> MongoReviewsRepo:
    db = MagicMock()
    db.__getitem__.return_value = col
    return MongoReviewsRepo(db)


async def test_push_review_uses_push_id_as_document_id(repo, col):
    review_id = await repo.push_review(550, {"content": "x",
                                             "created_at": 1_700_000_000_000})
    doc = col.insert_one.await_args.args[0]
    assert doc["_id"] == review_id and len(review_id) == 20
    assert doc["movie_id"] == 550
    assert doc["reactions"] == {}


async def test_push_review_wraps_mongo_errors(repo, col):
    col.insert_one.side_effect = PyMongoError("down")
    with pytest.raises(StoreUnavailable) as e:
        await repo.push_review(550, {"created_at": 1})
    assert "mongo_review_create_error" in str(e.value)


async def test_write_reaction_sets_single_field(repo, col):
    col.update_one.return_value = SimpleNamespace(matched_count=1)
    await repo.write_reaction(550, "r1", "u1", ReactionSymbol.HEART)
    flt, update = col.update_one.await_args.args
    assert flt == {"_id": "r1", "movie_id": 550}
    assert update == {"$set": {"reactions.u1": "❤️"}}


async def test_write_reaction_none_unsets_field(repo, col):
    col.update_one.return_value = SimpleNamespace(matched_count=1)
    await repo.write_reaction(550, "r1", "u1", None)
    _, update = col.update_one.await_args.args
    assert update == {"$unset": {"reactions.u1": ""}}


async def test_write_reaction_on_missing_review(repo, col):
    col.update_one.return_value = SimpleNamespace(matched_count=0)
    with pytest.raises(ReviewNotFound):
        await repo.write_reaction(550, "r1", "u1", ReactionSymbol.SMILE)


async def test_read_reaction_projects_one_user(repo, col):
    col.find_one.return_value = {"_id": "r1", "reactions": {"u1": "😾"}}
    assert await repo.read_reaction(550, "r1", "u1") == "😾"
    projection = col.find_one.await_args.args[1]
    assert projection == {"reactions.u1": 1}


async def test_read_reaction_absent(repo, col):
    col.find_one.return_value = {"_id": "r1"}
    assert await repo.read_reaction(550, "r1", "u1") is None


async def test_read_reaction_missing_review(repo, col):
    col.find_one.return_value = None
    with pytest.raises(ReviewNotFound):
        await repo.read_reaction(550, "r1", "u1")


# ---------- reads and the change feed ----------

class FakeCursor:
    """Async-iterable stand-in for a Motor cursor."""

    def __init__(self, docs, error=None):
        self.docs = [dict(d) for d in docs]
        self.error = error
        self.sort_spec = None
        self.limit_n = None

    def sort(self, spec):
        self.sort_spec = spec
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    async def _iterate(self):
        for doc in self.docs:
            yield doc
        if self.error is not None:
            raise self.error

    def __aiter__(self):
        return self._iterate()


class FakeChangeStream:
    """Yields the given events, then blocks on ``hold`` if one is set."""

    def __init__(self, events=(), hold=None):
        self.events = list(events)
        self.hold = hold
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.events:
            return self.events.pop(0)
        if self.hold is not None:
            await self.hold.wait()
        raise StopAsyncIteration


def _doc(review_id, movie_id=550, created_at=1):
    return {"_id": review_id, "movie_id": movie_id, "content": "x",
            "created_at": created_at}


async def _collect(calls, count):
    while len(calls) < count:
        await asyncio.sleep(0)


async def test_fetch_reviews_keys_records_by_review_id(repo, col):
    col.find = MagicMock(return_value=FakeCursor([_doc("r1"), _doc("r2")]))

    records = await repo.fetch_reviews(550)

    col.find.assert_called_once_with({"movie_id": 550})
    assert set(records) == {"r1", "r2"}
    assert "_id" not in records["r1"]


async def test_fetch_reviews_wraps_mongo_errors(repo, col):
    col.find = MagicMock(return_value=FakeCursor(
        [_doc("r1")], error=PyMongoError("cursor died")))
    with pytest.raises(StoreUnavailable) as e:
        await repo.fetch_reviews(550)
    assert "mongo_review_list_error" in str(e.value)


async def test_fetch_all_reviews_reads_newest_first_with_limit(repo, col):
    cursor = FakeCursor([_doc("b", movie_id=2, created_at=3),
                         {"_id": "orphan", "created_at": 2},
                         _doc("a", movie_id=1, created_at=1)])
    col.find = MagicMock(return_value=cursor)

    grouped = await repo.fetch_all_reviews(limit=10)

    col.find.assert_called_once_with({})
    assert cursor.sort_spec == [("created_at", -1), ("_id", -1)]
    assert cursor.limit_n == 10
    assert {m: set(r) for m, r in grouped.items()} == {2: {"b"}, 1: {"a"}}


async def test_fetch_all_reviews_without_limit_reads_everything(repo, col):
    cursor = FakeCursor([_doc("a")])
    col.find = MagicMock(return_value=cursor)
    await repo.fetch_all_reviews()
    assert cursor.limit_n is None


async def test_watch_sends_snapshot_before_any_change(repo, col):
    opened = []

    def watch(*args, **kwargs):
        opened.append("watch")
        return FakeChangeStream(hold=asyncio.Event())

    def find(*args, **kwargs):
        opened.append("find")
        return FakeCursor([_doc("r1")])

    col.watch = MagicMock(side_effect=watch)
    col.find = MagicMock(side_effect=find)
    calls = []

    unsubscribe = repo.subscribe_reviews(550, calls.append)
    await asyncio.wait_for(_collect(calls, 1), 1)

    assert opened == ["watch", "find"]
    assert list(calls[0]) == ["r1"]
    _, kwargs = col.watch.call_args
    assert kwargs == {"full_document": "updateLookup"}
    unsubscribe()
    await asyncio.sleep(0)


async def test_watch_rereads_on_every_change(repo, col):
    reads = iter([[_doc("r1")],
                  [_doc("r1"), _doc("r2")],
                  [_doc("r1"), _doc("r2"), _doc("r3")]])
    col.watch = MagicMock(return_value=FakeChangeStream(
        events=[{"operationType": "insert"},
                {"operationType": "update"}]))
    col.find = MagicMock(side_effect=lambda *a, **kw: FakeCursor(next(reads)))
    calls = []

    repo.subscribe_reviews(550, calls.append)
    await asyncio.wait_for(_collect(calls, 3), 1)

    assert [len(snapshot) for snapshot in calls] == [1, 2, 3]
    assert col.find.call_count == 3


async def test_watch_failure_reaches_on_error_as_store_unavailable(repo, col):
    col.watch = MagicMock(side_effect=PyMongoError("not a replica set"))
    calls, errors = [], []

    repo.subscribe_reviews(550, calls.append, errors.append)
    await asyncio.wait_for(_collect(errors, 1), 1)

    [error] = errors
    assert isinstance(error, StoreUnavailable)
    assert "mongo_review_watch_error" in str(error)
    assert isinstance(error.__cause__, PyMongoError)
    assert calls == []


async def test_unsubscribe_cancels_watch_task(repo, col):
    stream = FakeChangeStream(hold=asyncio.Event())
    col.watch = MagicMock(return_value=stream)
    col.find = MagicMock(side_effect=lambda *a, **kw: FakeCursor([]))
    calls = []

    unsubscribe = repo.subscribe_reviews(550, calls.append)
    await asyncio.wait_for(_collect(calls, 1), 1)
    [task] = [t for t in asyncio.all_tasks()
              if t.get_name() == "reviews-watch-550"]

    unsubscribe()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert task.cancelled()
    assert stream.closed
    unsubscribe()
