import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import is_debugging
from .errorcode import ErrorCode, ErrorCodeError, UsageError


logger = logging.getLogger(__name__)

VALIDATION_ERRORS = (RequestValidationError, ValidationError)


def response_ok(status_code: int, data: Any = None) -> JSONResponse:
    if data is None:
        data = {}
    return JSONResponse(status_code=status_code, content=data)


def _log_validation_errors(cause: Any) -> None:
    for item in cause.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()))
        logger.error(
            f"parameter validation error: Field: {loc} || ParamValue: {item.get('input')!r} "
            f"|| DefinedTag: {item.get('type')} || Message: {item.get('msg')}"
        )


def response_error(request: Request, obj: Any, *status_codes: int) -> JSONResponse:
    """Build the terminal JSON error response for a request.

    ``ErrorCode`` values carry their own status; any other payload needs an
    explicit status code. Handlers should ``return`` the result right away.

    Args:
        request: The request being answered, used for log context.
        obj: An ``ErrorCode`` (or a raised ``ErrorCodeError``) or a custom
            JSON-serialisable error payload.
        *status_codes: Status for a custom payload; the first one is used.

    Returns:
        JSONResponse with the error body.

    Raises:
        UsageError: If ``obj`` is not an ``ErrorCode`` and no status code is given.
    """
    if isinstance(obj, ErrorCodeError):
        obj = obj.error_code
    if isinstance(obj, ErrorCode):
        cause = obj.cause
        if cause is not None:
            if is_debugging() and isinstance(cause, VALIDATION_ERRORS):
                _log_validation_errors(cause)
            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            logger.error(f"Error on [{path} - {request.method}]: {cause!r}")
            underlying = cause.__cause__
            if underlying is not None:
                logger.error(f"Underlying error: {underlying!r}")
        return JSONResponse(status_code=obj.http_status, content=obj.to_dict())

    if not status_codes:
        raise UsageError(
            "livingkit/usage: required one http status code at least to customize the error response format"
        )
    return JSONResponse(status_code=status_codes[0], content=obj)
