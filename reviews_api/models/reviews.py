from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"
MIN_REVIEW_RATING = 1
MAX_REVIEW_RATING = 10


class ReactionSymbol(str, Enum):
    THUMBS_UP = "👍"
    SMILE = "😊"
    HEART = "❤️"
    SURPRISED = "😮"
    CAT_FROWN = "😾"

    @classmethod
    def parse(cls, value: Any) -> Optional["ReactionSymbol"]:
        """Accept an emoji or a member name; None for anything else."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.__members__.get(value.upper())


class ViewerIdentity(BaseModel):
    """The acting user, passed explicitly into every write."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class MovieSnapshot(BaseModel):
    """Movie metadata as the caller got it from the catalog API."""

    id: int
    title: str
    poster_path: str = ""
    release_date: str = ""
    vote_average: Optional[float] = None


class Review(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    movie_id: int
    movie_title: str
    author_id: str
    author_display_name: str = ANONYMOUS
    author_avatar_url: str = ""
    content: str
    rating: int
    created_at: int
    reactions: Dict[str, ReactionSymbol] = Field(default_factory=dict)

    @field_validator("reactions", mode="before")
    @classmethod
    def _drop_unknown_reactions(cls, value: Any) -> Dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("reactions must be a mapping")
        known: Dict[str, ReactionSymbol] = {}
        for user_id, raw in value.items():
            symbol = ReactionSymbol.parse(raw)
            if symbol is None:
                # cleared slots arrive as None; anything else is noise
                if raw is not None:
                    logger.warning(
                        "reaction_symbol_ignored",
                        extra={"user_id": user_id, "symbol": str(raw)})
                continue
            known[str(user_id)] = symbol
        return known

    @classmethod
    def from_record(
            cls,
            movie_id: int,
            review_id: str,
            record: Dict[str, Any]) -> "Review":
        """Build a review from a raw store record keyed by ``review_id``."""
        return cls.model_validate(
            {**record, "id": review_id, "movie_id": movie_id})


class ReactionSummary(BaseModel):
    counts_by_type: Dict[ReactionSymbol, int] = Field(default_factory=dict)
    viewer_reaction: Optional[ReactionSymbol] = None


class FeedEntry(BaseModel):
    review: Review
    summary: ReactionSummary


# ---------- HTTP payloads ----------

class ReviewCreateRequest(BaseModel):
    movie: MovieSnapshot
    content: str
    # range is checked by the feed controller so the error names the field
    rating: int


class ReviewCreateResponse(BaseModel):
    review_id: str


class ReviewFeedResponse(BaseModel):
    movie_id: Optional[int] = None
    items: List[FeedEntry]
    total: int


class ReactionToggleRequest(BaseModel):
    symbol: ReactionSymbol

    @field_validator("symbol", mode="before")
    @classmethod
    def _accept_names(cls, value: Any) -> Any:
        return ReactionSymbol.parse(value) or value


class ReactionToggleResponse(BaseModel):
    review_id: str
    reaction: Optional[ReactionSymbol]
