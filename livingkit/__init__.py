"""Helpers for building HTTP services on FastAPI."""

from .app import create_server, list_apis
from .core import (
    ERR_INVALID_REQUEST_PARAMS,
    ERR_UNKNOWN_ERROR,
    ErrorCode,
    ErrorCodeError,
    UsageError,
    response_error,
    response_ok,
)

__version__ = "0.1.0"
