import logging
import uuid
from typing import Callable

from fastapi import Request

from .errorcode import ERR_INVALID_REQUEST_PARAMS


logger = logging.getLogger(__name__)


def new_uuid4_string() -> str:
    """Return a randomly generated version 4 UUID string."""
    return str(uuid.uuid4())


def is_valid_uuid(value: str) -> bool:
    """Check whether ``value`` parses as a UUID (hyphenated, braced, URN or bare hex)."""
    try:
        uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def is_valid_uuid_param(param: str) -> Callable[[Request], None]:
    """Build a dependency rejecting requests whose ``param`` path parameter is not a UUID.

    Usage::

        @app.get("/users/{user_id}", dependencies=[Depends(is_valid_uuid_param("user_id"))])
    """

    def dependency(request: Request) -> None:
        value = request.path_params.get(param, "")
        if not value:
            cause = ValueError(f"URL param {param} is required")
            raise ERR_INVALID_REQUEST_PARAMS.with_error(cause).error()
        if not is_valid_uuid(value):
            logger.error(f"URL param: {param} is invalid UUID format")
            cause = ValueError(f"URL param {param} is not a UUID: {value!r}")
            raise ERR_INVALID_REQUEST_PARAMS.with_error(cause).error()

    return dependency
