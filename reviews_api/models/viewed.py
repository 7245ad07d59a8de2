from typing import List, Optional

from pydantic import BaseModel

# quick rating shown on "mark as viewed"; full reviews use 1..10
MIN_QUICK_RATING = 1
MAX_QUICK_RATING = 5


class ViewedSetRequest(BaseModel):
    # range is checked in the service so the error names the field
    rating: Optional[int] = None


class ViewedMark(BaseModel):
    movie_id: int
    viewed: bool = True
    rating: Optional[int] = None
    timestamp: int


class ViewedStateResponse(BaseModel):
    movie_id: int
    user_id: str
    mark: Optional[ViewedMark] = None  # None = not viewed


class ViewedListResponse(BaseModel):
    movie_ids: List[int]
    total: int
