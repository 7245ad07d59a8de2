"""HTTP flows for movie reviews, reactions and the public feed."""

import asyncio
import json

from reviews_api.core.errors import StoreUnavailable
from tests.helpers import MOVIE_ID, new_user, uid_header

BASE = f"/api/v1/movies/{MOVIE_ID}/reviews"
MOVIE = {"id": MOVIE_ID, "title": "Fight Club"}


async def _submit(client, user, content="Great film", rating=8):
    return await client.post(
        BASE,
        json={"movie": MOVIE, "content": content, "rating": rating},
        headers=uid_header(user, name="Tyler"))


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200 and r.json() == {"status": "ok"}


async def test_submit_and_list_review(client):
    user = new_user()
    r = await _submit(client, user)
    assert r.status_code == 201
    rid = r.json()["review_id"]

    r = await client.get(BASE, headers=uid_header(user))
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["review"]["id"] == rid
    assert item["review"]["author_display_name"] == "Tyler"
    assert item["summary"] == {"counts_by_type": {}, "viewer_reaction": None}


async def test_submit_without_user_returns_401(client, backend):
    r = await client.post(BASE, json={"movie": MOVIE, "content": "x",
                                      "rating": 5})
    assert r.status_code == 401
    assert r.json()["detail"] == "authentication_required"
    assert backend.writes == []


async def test_submit_with_invalid_user_header_returns_422(client):
    r = await client.post(BASE, json={"movie": MOVIE, "content": "x",
                                      "rating": 5},
                          headers={"X-User-Id": "not-a-uuid"})
    assert r.status_code == 422


async def test_submit_errors_name_the_bad_field(client, backend):
    user = new_user()
    r = await _submit(client, user, content="  ")
    assert r.status_code == 422
    assert r.json()["detail"] == "invalid_content"

    r = await _submit(client, user, rating=0)
    assert r.status_code == 422
    assert r.json()["detail"] == "invalid_rating"
    assert backend.writes == []


async def test_submit_store_down_returns_503(client, backend):
    backend.fail_writes = True
    r = await _submit(client, new_user())
    assert r.status_code == 503
    assert r.json()["detail"] == "store_unavailable"


async def test_reaction_toggle_flow(client):
    author, fan = new_user(), new_user()
    rid = (await _submit(client, author)).json()["review_id"]
    url = f"{BASE}/{rid}/reactions"

    r = await client.post(url, json={"symbol": "😮"},
                          headers=uid_header(fan))
    assert r.status_code == 200 and r.json()["reaction"] == "😮"

    # switch by member name
    r = await client.post(url, json={"symbol": "HEART"},
                          headers=uid_header(fan))
    assert r.json()["reaction"] == "❤️"

    r = await client.get(BASE, headers=uid_header(fan))
    summary = r.json()["items"][0]["summary"]
    assert summary == {"counts_by_type": {"❤️": 1},
                       "viewer_reaction": "❤️"}

    r = await client.post(url, json={"symbol": "❤️"},
                          headers=uid_header(fan))
    assert r.json()["reaction"] is None


async def test_reaction_requires_user(client, backend):
    rid = (await _submit(client, new_user())).json()["review_id"]
    r = await client.post(f"{BASE}/{rid}/reactions", json={"symbol": "👍"})
    assert r.status_code == 401
    assert backend.reactions(MOVIE_ID, rid) == {}


async def test_reaction_unknown_symbol_returns_422(client):
    rid = (await _submit(client, new_user())).json()["review_id"]
    r = await client.post(f"{BASE}/{rid}/reactions", json={"symbol": "🤡"},
                          headers=uid_header(new_user()))
    assert r.status_code == 422


async def test_reaction_on_missing_review_returns_404(client):
    r = await client.post(f"{BASE}/nope/reactions", json={"symbol": "👍"},
                          headers=uid_header(new_user()))
    assert r.status_code == 404
    assert r.json()["detail"] == "review_not_found"


async def test_public_feed_lists_reviews_of_all_movies(client, backend):
    backend.seed(1, "old", created_at=1)
    backend.seed(2, "new", created_at=2)
    r = await client.get("/api/v1/reviews")
    assert r.status_code == 200
    assert [i["review"]["id"] for i in r.json()["items"]] == ["new", "old"]

    r = await client.get("/api/v1/reviews?limit=1")
    assert r.json()["total"] == 1


async def test_responses_carry_trace_id(client):
    r = await client.get("/health")
    assert r.headers.get("X-Trace-Id")


async def test_submit_for_a_different_movie_returns_422(client, backend):
    r = await client.post(
        BASE,
        json={"movie": {"id": MOVIE_ID + 1, "title": "Se7en"},
              "content": "Great film", "rating": 8},
        headers=uid_header(new_user()))
    assert r.status_code == 422
    assert r.json()["detail"] == "movie_id_mismatch"
    assert backend.writes == []


async def test_review_stream_sends_snapshot_as_ndjson(client, backend, store):
    backend.seed(MOVIE_ID, "r1", content="tense", created_at=5)

    async def break_feed_once_subscribed():
        # the first line is out once the stream waits for changes
        while not store.live_subscriptions(MOVIE_ID):
            await asyncio.sleep(0)
        [sub] = store.live_subscriptions(MOVIE_ID)
        sub.fail(StoreUnavailable("mongo_review_watch_error"))

    breaker = asyncio.create_task(break_feed_once_subscribed())
    r = await asyncio.wait_for(client.get(f"{BASE}/stream"), 5)
    await breaker

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/x-ndjson")
    first = json.loads(r.text.splitlines()[0])
    assert first["movie_id"] == MOVIE_ID and first["total"] == 1
    assert first["items"][0]["review"]["content"] == "tense"
    assert store.live_subscriptions(MOVIE_ID) == []
