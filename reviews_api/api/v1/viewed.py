from http import HTTPStatus
from fastapi import APIRouter, Depends, Path, Response

from reviews_api.api.http_utils import handle_domain_errors
from reviews_api.dependencies import get_viewed_service, require_viewer
from reviews_api.models.reviews import ViewerIdentity
from reviews_api.models.viewed import (
    ViewedListResponse,
    ViewedMark,
    ViewedSetRequest,
    ViewedStateResponse,
)
from reviews_api.services.viewed_service import ViewedService

router = APIRouter(prefix="/api/v1/viewed", tags=["viewed"])


@router.get("/{movie_id}", response_model=ViewedStateResponse,
            status_code=HTTPStatus.OK)
@handle_domain_errors()
async def get_viewed_state(
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: ViewedService = Depends(get_viewed_service),
) -> ViewedStateResponse:
    mark = await svc.get(viewer.id, movie_id)
    return ViewedStateResponse(movie_id=movie_id, user_id=viewer.id,
                               mark=mark)


@router.put("/{movie_id}", response_model=ViewedMark,
            status_code=HTTPStatus.OK)
@handle_domain_errors()
async def mark_viewed(
    body: ViewedSetRequest,
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: ViewedService = Depends(get_viewed_service),
) -> ViewedMark:
    return await svc.mark_viewed(viewer.id, movie_id, rating=body.rating)


@router.delete("/{movie_id}", status_code=HTTPStatus.NO_CONTENT)
@handle_domain_errors()
async def unmark_viewed(
    movie_id: int = Path(..., ge=1),
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: ViewedService = Depends(get_viewed_service),
) -> Response:
    await svc.remove(viewer.id, movie_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("", response_model=ViewedListResponse,
            status_code=HTTPStatus.OK)
@handle_domain_errors()
async def list_viewed(
    viewer: ViewerIdentity = Depends(require_viewer),
    svc: ViewedService = Depends(get_viewed_service),
) -> ViewedListResponse:
    return await svc.viewed_ids(viewer.id)
