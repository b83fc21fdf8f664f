import json
import logging
import sys
import time
import traceback
from typing import Any, Dict, List, Optional, TextIO

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import is_debugging, is_verbose
from .constants import APPLICATION_JSON, MULTIPART_FORM_DATA
from .errorcode import ERR_INVALID_REQUEST_PARAMS, ERR_UNKNOWN_ERROR, ErrorCode, ErrorCodeError, UsageError
from .response import VALIDATION_ERRORS, response_error


logger = logging.getLogger(__name__)

READ_METHODS = {"GET", "DELETE"}
WRITE_METHODS = {"POST", "PUT", "PATCH"}
DELIMITERS = "=" * 50


def classify_exception(value: Any) -> ErrorCode:
    """Map a raised value to the ErrorCode that answers the request.

    Parameter validation failures become ``ERR_INVALID_REQUEST_PARAMS``, a
    raised ``ErrorCodeError`` answers with the code it carries, an
    ``ErrorCode`` is used as-is and anything else becomes ``ERR_UNKNOWN_ERROR``
    wrapping the value.
    """
    if isinstance(value, VALIDATION_ERRORS):
        return ERR_INVALID_REQUEST_PARAMS.with_error(value)
    if isinstance(value, ErrorCodeError):
        return value.error_code
    if isinstance(value, ErrorCode):
        return value
    if isinstance(value, BaseException):
        return ERR_UNKNOWN_ERROR.with_error(value)
    return ERR_UNKNOWN_ERROR.with_error(RuntimeError(str(value)))


def _write_recovered(out: TextIO, exc: BaseException) -> None:
    stamp = time.strftime("%Y/%m/%d - %H:%M:%S")
    out.write(f"[Recovery] {stamp} panic recovered:\n{exc!r}\n")
    if not isinstance(exc, (ErrorCodeError,) + VALIDATION_ERRORS):
        out.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    out.flush()


class RecoverJSONResponse:
    """Pure ASGI middleware that turns any exception escaping the app into a JSON error.

    It is meant to be the outermost middleware so that every request is
    answered with exactly one ErrorCode body. ``UsageError`` is re-raised
    since it marks a coding defect rather than a failed request.
    """

    def __init__(self, app: ASGIApp, out: Optional[TextIO] = None) -> None:
        self.app = app
        self.out = out

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except UsageError:
            raise
        except Exception as exc:
            _write_recovered(self.out or sys.stderr, exc)
            if response_started:
                logger.error(f"Exception after response started on {scope.get('method')} {scope.get('path')}: {exc!r}")
                return
            response = response_error(Request(scope), classify_exception(exc))
            await response(scope, receive, send)


def install_recovery(app: FastAPI, out: Optional[TextIO] = None) -> None:
    """Answer every failed request on ``app`` with an ErrorCode JSON body.

    Exceptions handled by the framework before reaching middleware (raised
    ErrorCodeErrors and parameter validation failures) are classified by exception
    handlers; everything else is caught by ``RecoverJSONResponse``.
    """

    async def _recover(request: Request, exc: Exception) -> JSONResponse:
        _write_recovered(out or sys.stderr, exc)
        return response_error(request, classify_exception(exc))

    for exc_class in (ErrorCodeError,) + VALIDATION_ERRORS:
        app.add_exception_handler(exc_class, _recover)
    app.add_middleware(RecoverJSONResponse, out=out)


async def _read_body(receive: Receive) -> bytes:
    chunks: List[bytes] = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnect()
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class DebugLogRequestData:
    """Echo inbound request data to ``out`` for debugging.

    Active only when ``Config.DEBUG`` is set and the ``livingkit`` logger is at
    DEBUG level. Write-method bodies are buffered once and replayed downstream.
    """

    def __init__(self, app: ASGIApp, out: Optional[TextIO] = None) -> None:
        self.app = app
        self.out = out

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not (is_debugging() and is_verbose()):
            await self.app(scope, receive, send)
            return

        out = self.out or sys.stderr
        request = Request(scope)
        method = request.method
        content_type = request.headers.get("content-type", "")
        data: Any = None

        if method in READ_METHODS:
            data = {key: request.query_params.getlist(key) for key in request.query_params.keys()}
        elif method in WRITE_METHODS:
            try:
                body = await _read_body(receive)
            except ClientDisconnect as e:
                logger.warning(f"read body data error: {e!r}")
                await self.app(scope, receive, send)
                return
            receive = _replay_receive(body, receive)

            if content_type.startswith(APPLICATION_JSON):
                try:
                    data = json.loads(body) if body else None
                except ValueError as e:
                    logger.warning(f"invalid JSON format error: {e}")
                    await self.app(scope, receive, send)
                    return
            elif content_type.startswith(MULTIPART_FORM_DATA):
                try:
                    data, files = await self._parse_multipart(scope, body)
                except (MultiPartException, HTTPException) as e:
                    logger.warning(f"parse multipart form error: {e}")
                    await self.app(scope, receive, send)
                    return
                if files:
                    out.write(f"{DELIMITERS}: find file parts: {files}\n")

        client = request.client.host if request.client else ""
        out.write(
            f"{DELIMITERS}\n[{request.url.path} - {method} - {client}] [{dict(request.headers)} - {data}] \n{DELIMITERS}\n"
        )
        out.flush()
        await self.app(scope, receive, send)

    @staticmethod
    async def _parse_multipart(scope: Scope, body: bytes):
        form_request = Request(dict(scope), receive=_replay_receive(body, _no_more_messages))
        form = await form_request.form()
        values: Dict[str, List[str]] = {}
        files: Dict[str, List[Dict[str, Any]]] = {}
        try:
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    files.setdefault(key, []).append(
                        {"filename": value.filename, "content_type": value.content_type, "size": value.size}
                    )
                else:
                    values.setdefault(key, []).append(value)
        finally:
            await form.close()
        return values, files


async def _no_more_messages() -> Message:
    return {"type": "http.disconnect"}
