"""Reaction counting and the per-user reaction toggle."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any, Mapping, Optional

from reviews_api.models.reviews import ReactionSummary, ReactionSymbol

if TYPE_CHECKING:
    from reviews_api.services.review_store import ReviewsBackend

logger = logging.getLogger(__name__)


def summarize(
        reactions: Optional[Mapping[str, Any]],
        viewer_id: Optional[str]) -> ReactionSummary:
    """Fold a ``user_id -> symbol`` map into per-symbol counts.

    Single pass over the map. Entries that are not a known symbol are
    not counted. ``viewer_reaction`` is the viewer's own symbol, if any.
    """
    counts: Counter = Counter()
    viewer_reaction: Optional[ReactionSymbol] = None
    for user_id, raw in (reactions or {}).items():
        symbol = ReactionSymbol.parse(raw)
        if symbol is None:
            continue
        counts[symbol] += 1
        if viewer_id is not None and user_id == viewer_id:
            viewer_reaction = symbol
    return ReactionSummary(
        counts_by_type=dict(counts),
        viewer_reaction=viewer_reaction,
    )


async def toggle_reaction(
        backend: "ReviewsBackend",
        movie_id: int,
        review_id: str,
        viewer_id: str,
        symbol: ReactionSymbol) -> Optional[ReactionSymbol]:
    """Set, replace or clear the viewer's reaction on one review.

    Same symbol as the current one clears it; anything else replaces it
    with one write. Read and write are separate calls, so concurrent
    toggles by the same user from two devices resolve as last writer wins.
    Returns the reaction the viewer holds afterwards.
    """
    current = ReactionSymbol.parse(
        await backend.read_reaction(movie_id, review_id, viewer_id))
    new = None if current == symbol else symbol
    await backend.write_reaction(movie_id, review_id, viewer_id, new)

    logger.info(
        "reaction_toggled",
        extra={
            "movie_id": movie_id,
            "review_id": review_id,
            "user_id": viewer_id,
            "previous": current.value if current else None,
            "reaction": new.value if new else None,
        },
    )
    return new
