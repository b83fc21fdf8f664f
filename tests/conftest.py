"""Shared test fixtures for livingkit tests."""

import io
import logging

import pytest
from starlette.requests import Request

from livingkit.core.config import Config


@pytest.fixture
def sink():
    """In-memory diagnostic stream."""
    return io.StringIO()


@pytest.fixture
def debug_mode(monkeypatch):
    """Turn on the debug flag and DEBUG level on the livingkit logger."""
    monkeypatch.setattr(Config, "DEBUG", True)
    kit_logger = logging.getLogger("livingkit")
    previous = kit_logger.level
    kit_logger.setLevel(logging.DEBUG)
    yield
    kit_logger.setLevel(previous)


@pytest.fixture
def make_request():
    def _make(method="GET", path="/", headers=None):
        raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
        return Request({
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": raw_headers,
        })

    return _make
