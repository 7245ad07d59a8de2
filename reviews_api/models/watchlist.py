from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from reviews_api.models.reviews import MovieSnapshot


class WatchlistSort(str, Enum):
    date = "date"
    rating = "rating"


class WatchlistPutResponse(BaseModel):
    ok: bool
    created: bool


class WatchlistDeleteResponse(BaseModel):
    ok: bool
    deleted: bool


class WatchlistItem(MovieSnapshot):
    added_at: Optional[int] = None
    viewed: bool = False


class WatchlistResponse(BaseModel):
    items: List[WatchlistItem]
    total: int
