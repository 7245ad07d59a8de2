import uuid
from typing import Dict, Optional

from reviews_api.models.reviews import MovieSnapshot, ViewerIdentity

MOVIE_ID = 550


def new_user() -> str:
    return str(uuid.uuid4())


def viewer(user_id: Optional[str] = None,
           name: str = "Tyler") -> ViewerIdentity:
    return ViewerIdentity(id=user_id or new_user(), display_name=name,
                          avatar_url="https://img.example/a.png")


def movie(movie_id: int = MOVIE_ID, title: str = "Fight Club") -> MovieSnapshot:
    return MovieSnapshot(id=movie_id, title=title,
                         release_date="1999-10-15", vote_average=8.4)


def uid_header(user_id: str, name: Optional[str] = None) -> Dict[str, str]:
    headers = {"X-User-Id": user_id}
    if name:
        headers["X-User-Name"] = name
    return headers
