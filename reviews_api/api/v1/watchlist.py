from http import HTTPStatus
from fastapi import APIRouter, Depends, HTTPException, Path, Query

from reviews_api.api.http_utils import handle_domain_errors
from reviews_api.dependencies import get_watchlist_service, require_viewer
from reviews_api.models.reviews import MovieSnapshot, ViewerIdentity
from reviews_api.models.watchlist import (
    WatchlistDeleteResponse,
    WatchlistPutResponse,
    WatchlistResponse,
    WatchlistSort,
)
from reviews_api.services.watchlist_service import WatchlistService

router = APIRouter(prefix="/api/v1/watchlist", tags=["watchlist"])


@router.put("/{movie_id}", response_model=WatchlistPutResponse,
            status_code=HTTPStatus.OK)
@handle_domain_errors()
async def add_to_watchlist(
    body: MovieSnapshot,
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: WatchlistService = Depends(get_watchlist_service),
):
    if body.id != movie_id:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                            detail="movie_id_mismatch")
    return await svc.add(user_id=viewer.id, movie=body)


@router.delete("/{movie_id}", response_model=WatchlistDeleteResponse,
               status_code=HTTPStatus.OK)
@handle_domain_errors()
async def remove_from_watchlist(
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: WatchlistService = Depends(get_watchlist_service),
):
    return await svc.remove(user_id=viewer.id, movie_id=movie_id)


@router.get("", response_model=WatchlistResponse, status_code=HTTPStatus.OK)
@handle_domain_errors()
async def list_watchlist(
    sort: WatchlistSort = Query(WatchlistSort.date),
    only_viewed: bool = Query(False),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: WatchlistService = Depends(get_watchlist_service),
):
    return await svc.list(user_id=viewer.id, sort=sort,
                          only_viewed=only_viewed)
