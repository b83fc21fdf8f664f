import json as jsonlib
import logging
import sys
import time
from typing import Any, Dict, Mapping, Optional, TextIO, Tuple
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from .config import Config
from .constants import APPLICATION_JSON, APPLICATION_X_WWW_FORM_URLENCODED, CONTENT_TYPE, TEXT_PLAIN
from .retrying import retrying


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "*/*",
    "Connection": "keep-alive",
}
PAYLOAD_METHODS = {"POST", "PUT", "PATCH"}


class ServerResponseError(Exception):
    """Raised by ``HTTPClient.handle_response`` for non-OK or undecodable responses.

    ``success`` and ``message`` come from the server error body when it can be
    decoded; otherwise ``message`` describes the decode failure.
    """

    def __init__(self, success: bool, message: str, response: httpx.Response) -> None:
        super().__init__(message)
        self.success = success
        self.message = message
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class HTTPClient:
    """Thin wrapper over ``httpx.Client`` with default headers, retry and wire dump.

    ``address`` (``scheme://host[:port]``) is prefixed to relative paths.
    """

    def __init__(
        self,
        address: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        retry_times: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        self.scheme = ""
        self.host = ""
        self.address = ""
        if address is not None:
            self.with_address(address)
        self.client = client if client is not None else httpx.Client()
        self.retry_times = retry_times if retry_times is not None else Config.HTTPCLIENT_RETRY_TIMES
        self.retry_delay = retry_delay if retry_delay is not None else Config.HTTPCLIENT_RETRY_DELAY

    def with_address(self, address: str) -> "HTTPClient":
        parsed = urlsplit(address)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("invalid scheme only support http(s) scheme")
        if not parsed.netloc:
            raise ValueError("no host found in request URL")
        self.scheme = parsed.scheme
        self.host = parsed.netloc
        self.address = address
        return self

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if not self.address or urlsplit(path).scheme:
            return path
        return f"{self.address.rstrip('/')}/{path.lstrip('/')}"

    def _new_request(
        self, method: str, url: str, content: Optional[bytes], headers: Optional[Mapping[str, str]]
    ) -> httpx.Request:
        method = method.upper()
        logger.debug(f"request address: {self.address}, path: {url}, method: {method}")
        expected_payload = method in PAYLOAD_METHODS
        if expected_payload and content is None:
            content = b""

        merged = dict(DEFAULT_HEADERS)
        merged.update({k: v for k, v in (headers or {}).items() if v})
        if expected_payload and not any(k.lower() == CONTENT_TYPE.lower() for k in merged):
            merged[CONTENT_TYPE] = TEXT_PLAIN
        return self.client.build_request(method, url, content=content, headers=merged)

    def do_request(
        self,
        method: str,
        path: str,
        content: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        request = self._new_request(method, self._url(path), content, headers)

        started = time.monotonic()
        try:
            response = retrying(self.retry_times, self.retry_delay, lambda: self.client.send(request))
        except httpx.HTTPError as e:
            logger.error(f"request ({request.url}:{request.method}) failed, error: {e}")
            raise
        finally:
            logger.debug(f"request elapsed time: {time.monotonic() - started:.3f}s")

        dump_verbose_request_response(sys.stderr, request, response)
        return response

    @staticmethod
    def ok(response: httpx.Response) -> bool:
        """Return True when the status code is in [200, 400)."""
        return 200 <= response.status_code < 400

    def handle_response(self, response: httpx.Response) -> Any:
        """Decode a JSON entity from an OK response, raise ``ServerResponseError`` otherwise."""
        try:
            if self.ok(response):
                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    raise ServerResponseError(
                        False, f"unable to unmarshal json response, error: {e}", response
                    ) from e

            try:
                payload = response.json()
            except ValueError as e:
                raise ServerResponseError(
                    False, f"unable to unmarshal json error response, error: {e}", response
                ) from e
            if isinstance(payload, dict):
                raise ServerResponseError(bool(payload.get("success", False)), str(payload.get("message", "")), response)
            raise ServerResponseError(False, str(payload), response)
        finally:
            response.close()

    @staticmethod
    def prepare_body(
        json: Any = None, data: Optional[Mapping[str, Any]] = None
    ) -> Tuple[Optional[bytes], Optional[str]]:
        """Encode a request body, form ``data`` taking precedence over ``json``."""
        if data is None and json is not None:
            try:
                payload = jsonlib.dumps(json).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise ValueError(f"invalid json data, error: {e}") from e
            return payload, APPLICATION_JSON
        if data is not None:
            return urlencode(data, doseq=True).encode("utf-8"), APPLICATION_X_WWW_FORM_URLENCODED
        return None, None

    @staticmethod
    def prepare_path(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Append ``params`` to the query string of ``path``, keeping existing ones."""
        if not params:
            return path
        parts = urlsplit(path)
        query = urlencode(params, doseq=True)
        if parts.query:
            query = f"{parts.query}&{query}"
        return urlunsplit(parts._replace(query=query))

    def _send_with_body(
        self,
        method: str,
        path: str,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        content, content_type = self.prepare_body(json, data)
        merged: Dict[str, str] = dict(headers or {})
        if content_type:
            merged[CONTENT_TYPE] = content_type
        return self.do_request(method, path, content, merged)

    def _send_with_params(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        return self.do_request(method, self.prepare_path(path, params), None, headers)

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self._send_with_params("GET", path, params, headers)

    def delete(self, path: str, params: Optional[Mapping[str, Any]] = None, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self._send_with_params("DELETE", path, params, headers)

    def post(self, path: str, json: Any = None, data: Optional[Mapping[str, Any]] = None, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self._send_with_body("POST", path, json, data, headers)

    def put(self, path: str, json: Any = None, data: Optional[Mapping[str, Any]] = None, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self._send_with_body("PUT", path, json, data, headers)

    def patch(self, path: str, json: Any = None, data: Optional[Mapping[str, Any]] = None, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return self._send_with_body("PATCH", path, json, data, headers)


def _format_message(start_line: str, headers: httpx.Headers, body: bytes, include_body: bool) -> str:
    lines = [start_line]
    lines.extend(f"{name}: {value}" for name, value in headers.multi_items())
    text = "\r\n".join(lines) + "\r\n\r\n"
    if include_body and body:
        text += body.decode("utf-8", errors="replace") + "\n"
    return text


def dump_verbose_request_response(out: TextIO, request: httpx.Request, response: httpx.Response) -> None:
    """Write ``request`` and ``response`` in HTTP/1.x wire form when ``DEBUG_HTTPCLIENT`` is set."""
    if not Config.DEBUG_HTTPCLIENT:
        return
    include_body = Config.DEBUG_HTTPCLIENT_BODY

    target = request.url.raw_path.decode("ascii")
    out.write(">" * 100 + "\n")
    out.write(_format_message(f"{request.method} {target} HTTP/1.1", request.headers, request.content, include_body))

    out.write("<" * 100 + "\n")
    status_line = f"{response.http_version} {response.status_code} {response.reason_phrase}"
    out.write(_format_message(status_line, response.headers, response.content, include_body))
    out.flush()
