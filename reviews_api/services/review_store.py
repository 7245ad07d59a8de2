"""Live review feed per movie, translated from raw store records."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Set,
)

from pydantic import ValidationError

from reviews_api.core.errors import StoreUnavailable
from reviews_api.models.reviews import ReactionSymbol, Review

logger = logging.getLogger(__name__)

RawRecords = Mapping[str, Any]
RawCallback = Callable[[Optional[RawRecords]], None]
ErrorCallback = Callable[[Exception], None]
ReviewsCallback = Callable[[List[Review]], None]


class ReviewsBackend(Protocol):
    """Raw storage operations the review feed is built on."""

    def subscribe_reviews(
            self,
            movie_id: int,
            on_change: RawCallback,
            on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        ...

    async def fetch_reviews(self, movie_id: int) -> Optional[RawRecords]:
        ...

    async def fetch_all_reviews(
            self,
            limit: Optional[int] = None) -> Mapping[int, RawRecords]:
        ...

    async def push_review(self, movie_id: int, record: Dict[str, Any]) -> str:
        ...

    async def read_reaction(
            self,
            movie_id: int,
            review_id: str,
            user_id: str) -> Optional[str]:
        ...

    async def write_reaction(
            self,
            movie_id: int,
            review_id: str,
            user_id: str,
            symbol: Optional[ReactionSymbol]) -> None:
        ...


def parse_review_records(
        movie_id: int,
        raw: Optional[RawRecords]) -> List[Review]:
    """Translate ``{review_id: record}`` into reviews, skipping bad records."""
    reviews: List[Review] = []
    for review_id, record in (raw or {}).items():
        if not isinstance(record, Mapping):
            logger.warning(
                "review_record_skipped",
                extra={"movie_id": movie_id, "review_id": str(review_id),
                       "err": "record is not a mapping"})
            continue
        try:
            reviews.append(Review.from_record(movie_id, str(review_id),
                                              dict(record)))
        except ValidationError as error:
            logger.warning(
                "review_record_skipped",
                extra={"movie_id": movie_id, "review_id": str(review_id),
                       "err": str(error)})
    return reviews


class Subscription:
    """Handle for one live feed listener.

    Cancelling is idempotent. Deliveries are checked against ``active``
    right before the callback runs, so a snapshot that was in flight when
    ``cancel`` was called is dropped.
    """

    def __init__(
            self,
            movie_id: int,
            callback: ReviewsCallback,
            on_error: Optional[ErrorCallback] = None,
            on_close: Optional[Callable[["Subscription"], None]] = None,
    ) -> None:
        self.movie_id = movie_id
        self.active = True
        self._callback = callback
        self._on_error = on_error
        self._on_close = on_close
        self._unsubscribe: Optional[Callable[[], None]] = None

    def bind(self, unsubscribe: Callable[[], None]) -> None:
        if self.active:
            self._unsubscribe = unsubscribe
        else:
            # cancelled from inside the initial delivery
            unsubscribe()

    def dispatch(self, reviews: List[Review]) -> None:
        if self.active:
            self._callback(reviews)

    def fail(self, error: Exception) -> None:
        if not self.active:
            return
        logger.error(
            "review_feed_failed",
            extra={"movie_id": self.movie_id, "err": str(error)})
        if self._on_error is not None:
            self._on_error(error)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._on_close is not None:
            self._on_close(self)

    __call__ = cancel

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class ReviewStore:
    """Subscription boundary between the backend and the feed controller."""

    def __init__(self, backend: ReviewsBackend) -> None:
        self.backend = backend
        self._subscriptions: Dict[int, Set[Subscription]] = defaultdict(set)

    def subscribe(
            self,
            movie_id: int,
            callback: ReviewsCallback,
            on_error: Optional[ErrorCallback] = None) -> Subscription:
        """Deliver the current reviews now and again on every change.

        The caller owns the returned handle and must cancel it.
        """
        subscription = Subscription(
            movie_id, callback, on_error=on_error, on_close=self._forget)
        self._subscriptions[movie_id].add(subscription)

        def on_change(raw: Optional[RawRecords]) -> None:
            subscription.dispatch(parse_review_records(movie_id, raw))

        subscription.bind(
            self.backend.subscribe_reviews(movie_id, on_change,
                                           subscription.fail))
        logger.debug("review_feed_subscribed", extra={"movie_id": movie_id})
        return subscription

    def live_subscriptions(self, movie_id: int) -> List[Subscription]:
        return [s for s in self._subscriptions.get(movie_id, ()) if s.active]

    async def snapshot(self, movie_id: int) -> List[Review]:
        return parse_review_records(
            movie_id, await self.backend.fetch_reviews(movie_id))

    async def all_reviews(self, limit: Optional[int] = None) -> List[Review]:
        """Reviews of every movie; ``limit`` caps the newest ones read."""
        reviews: List[Review] = []
        grouped = await self.backend.fetch_all_reviews(limit)
        for movie_id, raw in grouped.items():
            try:
                movie_id = int(movie_id)
            except (TypeError, ValueError):
                logger.warning(
                    "review_record_skipped",
                    extra={"movie_id": str(movie_id),
                           "err": "movie id is not an integer"})
                continue
            reviews.extend(parse_review_records(movie_id, raw))
        return reviews

    async def refresh(self, movie_id: int) -> int:
        """Re-read one movie's reviews and push them to live subscribers.

        Returns how many subscribers got the snapshot. A failed read is
        logged and reported as zero; the change feed still catches up.
        """
        live = self.live_subscriptions(movie_id)
        if not live:
            return 0
        try:
            reviews = await self.snapshot(movie_id)
        except StoreUnavailable as error:
            logger.warning(
                "review_feed_refresh_failed",
                extra={"movie_id": movie_id, "err": str(error)})
            return 0
        delivered = 0
        for subscription in live:
            if subscription.active:
                subscription.dispatch(reviews)
                delivered += 1
        return delivered

    def close(self) -> int:
        """Cancel every live subscription; returns how many were open."""
        live = [s for listeners in self._subscriptions.values()
                for s in listeners if s.active]
        for subscription in live:
            subscription.cancel()
        self._subscriptions.clear()
        if live:
            logger.info("review_store_closed",
                        extra={"subscriptions": len(live)})
        return len(live)

    def _forget(self, subscription: Subscription) -> None:
        listeners = self._subscriptions.get(subscription.movie_id)
        if listeners is None:
            return
        listeners.discard(subscription)
        if not listeners:
            del self._subscriptions[subscription.movie_id]
        logger.debug("review_feed_unsubscribed",
                     extra={"movie_id": subscription.movie_id})
