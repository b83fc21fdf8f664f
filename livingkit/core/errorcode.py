"""Uniform error response values.

An ``ErrorCode`` pairs an application code number, an HTTP status and a
human readable message. Codes are usually declared once as module-level
constants and specialised per request::

    ERR_USER_NOT_FOUND = ErrorCode(2001, 404, "user not found")

    raise ERR_USER_NOT_FOUND.with_message(user_id).with_error(exc).error()

Every modifier returns a new instance, so the shared constant is never
changed by a request. ``ErrorCode`` is a plain value; ``error()`` wraps it in
a fresh ``ErrorCodeError`` for each raise, so tracebacks and exception
context stay attached to that per-request exception.
"""

from typing import Any, Dict, Optional


class UsageError(TypeError):
    """Raised when the toolkit API is called in a way that can never be right."""


class ErrorCode:
    """Application error code rendered as ``{"code", "httpStatus", "message"}``."""

    def __init__(
        self,
        code: int,
        http_status: int,
        message: str,
        *,
        delimiter: str = " ",
        cause: Optional[BaseException] = None,
    ) -> None:
        if not 100 <= http_status <= 599:
            raise ValueError(f"Invalid HTTP status {http_status} for error code {code}")
        self._code = code
        self._http_status = http_status
        self._message = message
        self._delimiter = delimiter
        self._cause = cause
    @property
    def code(self) -> int:
        return self._code

    @property
    def http_status(self) -> int:
        return self._http_status

    @property
    def message(self) -> str:
        return self._message

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    def _replace(self, **changes: Any) -> "ErrorCode":
        values = {
            "message": self._message,
            "delimiter": self._delimiter,
            "cause": self._cause,
        }
        values.update(changes)
        return type(self)(self._code, self._http_status, **values)

    def set_delimiter(self, delimiter: str) -> "ErrorCode":
        """Return a copy that appends messages with ``delimiter`` instead of a blank space."""
        return self._replace(delimiter=delimiter)

    def with_message(self, message: str, replace: bool = False) -> "ErrorCode":
        """Return a copy with ``message`` appended, or replacing the current one."""
        if replace:
            return self._replace(message=message)
        return self._replace(message=f"{self._message}{self._delimiter}{message}")

    def with_error(self, cause: Optional[BaseException]) -> "ErrorCode":
        """Return a copy wrapping ``cause``. ``None`` keeps the current cause."""
        if cause is None:
            return self._replace()
        return self._replace(cause=cause)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self._code, "httpStatus": self._http_status, "message": self._message}

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        return f"ErrorCode(code={self._code}, http_status={self._http_status}, message={self._message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorCode):
            return NotImplemented
        return (self._code, self._http_status, self._message) == (other.code, other.http_status, other.message)

    def __hash__(self) -> int:
        return hash((self._code, self._http_status, self._message))

    def error(self) -> "ErrorCodeError":
        """Return a new exception carrying this code, ready to be raised."""
        return ErrorCodeError(self)


class ErrorCodeError(Exception):
    """Exception raised by handlers to answer a request with ``error_code``."""

    def __init__(self, error_code: ErrorCode) -> None:
        super().__init__(error_code.message)
        self.error_code = error_code
        if error_code.cause is not None:
            self.__cause__ = error_code.cause

    def __repr__(self) -> str:
        return f"ErrorCodeError({self.error_code!r})"


ERR_INVALID_REQUEST_PARAMS = ErrorCode(1000, 400, "invalid request params")
ERR_UNKNOWN_ERROR = ErrorCode(9999, 500, "unknown server internal error")
