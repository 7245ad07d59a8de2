import logging
from functools import wraps
from http import HTTPStatus
from fastapi import HTTPException

from reviews_api.core.errors import (
    AuthenticationRequired,
    ReviewNotFound,
    ReviewsError,
    ReviewValidationError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_ERRMAP: dict[type[ReviewsError], HTTPStatus] = {
    AuthenticationRequired: HTTPStatus.UNAUTHORIZED,
    ReviewValidationError: HTTPStatus.UNPROCESSABLE_ENTITY,
    ReviewNotFound: HTTPStatus.NOT_FOUND,
    StoreUnavailable: HTTPStatus.SERVICE_UNAVAILABLE,
}


def handle_domain_errors(
        mapping: dict[type[ReviewsError], HTTPStatus] | None = None):
    """
    Translate domain errors into HTTPException; ``detail`` is the error code.
    The first matching class in ``mapping`` wins, unknown ones become 500.
    """
    errmap = DEFAULT_ERRMAP if mapping is None else mapping

    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except ReviewsError as e:
                for cls, status in errmap.items():
                    if isinstance(e, cls):
                        if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
                            logger.error("request_failed",
                                         extra={"code": e.code,
                                                "err": str(e)})
                        raise HTTPException(status_code=status,
                                            detail=e.code) from e
                logger.exception("unmapped_domain_error")
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail="internal_error") from e
        return wrapper
    return decorator
