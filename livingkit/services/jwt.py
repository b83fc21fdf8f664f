"""Bearer token extraction, see https://datatracker.ietf.org/doc/html/rfc6750."""

import logging
from typing import Any, Dict, Iterable, Sequence

from fastapi import Request
from jose import JWTError, jwt


logger = logging.getLogger(__name__)


class TokenExtractionError(Exception):
    """Base class for tokens that cannot be taken from a request."""


class NoTokenError(TokenExtractionError):
    pass


class TokenTypeError(TokenExtractionError):
    pass


class InvalidTokenError(TokenExtractionError):
    pass


class HeaderExtractor:
    """Extract a token from the first non-empty header in ``headers``."""

    def __init__(self, token_type: str = "Bearer", headers: Iterable[str] = ("Authorization",)) -> None:
        self.token_type = token_type
        self.headers = tuple(headers)

    def extract_token(self, request: Request) -> str:
        value = ""
        for name in self.headers:
            value = request.headers.get(name, "")
            if value:
                break
        if not value:
            raise NoTokenError("no token present in request")
        prefix = f"{self.token_type} "
        if value == self.token_type:
            raise NoTokenError(f"empty {self.token_type} token in request")
        if not value.startswith(prefix):
            raise TokenTypeError(f"token type is not registered type: {self.token_type}")
        token = value[len(prefix):].strip()
        if not token:
            raise NoTokenError(f"empty {self.token_type} token in request")
        return token


def decode_token(token: str, key: Any, algorithms: Sequence[str] = ("HS256",), **options: Any) -> Dict[str, Any]:
    try:
        return jwt.decode(token, key, algorithms=list(algorithms), **options)
    except JWTError as e:
        logger.warning(f"Invalid JWT token: {e}")
        raise InvalidTokenError(str(e)) from e
