import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .constants import DEBUG_HTTPCLIENT, DEBUG_HTTPCLIENT_BODY, MONGO_AUTHENTICATION_DB


load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Config:
    """Toolkit configuration loaded from environment variables.

    Flags are read once at import; tests override them with ``monkeypatch.setattr``.
    """

    DEBUG: bool = _env_flag("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))

    MONGO_AUTHENTICATION_DB: str = os.getenv(MONGO_AUTHENTICATION_DB, "admin")

    DEBUG_HTTPCLIENT: bool = _env_flag(DEBUG_HTTPCLIENT)
    DEBUG_HTTPCLIENT_BODY: bool = _env_flag(DEBUG_HTTPCLIENT_BODY)
    HTTPCLIENT_RETRY_TIMES: int = int(os.getenv("HTTPCLIENT_RETRY_TIMES", "1"))
    HTTPCLIENT_RETRY_DELAY: float = float(os.getenv("HTTPCLIENT_RETRY_DELAY", "1.0"))

    @classmethod
    def validate(cls) -> None:
        if not isinstance(logging.getLevelName(cls.LOG_LEVEL.upper()), int):
            raise ValueError(f"LOG_LEVEL has unknown value: {cls.LOG_LEVEL}")
        if not 0 < cls.PORT < 65536:
            raise ValueError(f"PORT must be between 1 and 65535, got {cls.PORT}")
        if cls.HTTPCLIENT_RETRY_TIMES < 1:
            raise ValueError("HTTPCLIENT_RETRY_TIMES must be greater than 0")


def is_debugging() -> bool:
    return Config.DEBUG


def is_verbose() -> bool:
    """Whether the toolkit logger would emit DEBUG records."""
    return logging.getLogger("livingkit").getEffectiveLevel() <= logging.DEBUG


@dataclass
class Connection:
    """Settings of one database or cache backend, keyed by name in a YAML file."""

    backend: str = ""
    address: str = ""
    user: str = ""
    password: str = ""
    name: str = ""
    enabled: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Connection":
        known = {k: raw[k] for k in ("backend", "address", "user", "password", "name", "enabled") if k in raw}
        return cls(options=dict(raw.get("options") or {}), **known)


def load_connections(path: str, *, enabled_only: bool = False) -> Dict[str, Connection]:
    with open(path, "r", encoding="utf-8") as f:
        raw: Optional[Dict[str, Any]] = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Connection file {path} must contain a mapping of name to connection")

    connections: Dict[str, Connection] = {}
    for name, value in raw.items():
        if not isinstance(value, dict):
            raise ValueError(f"Connection {name!r} in {path} must be a mapping")
        conn = Connection.from_dict(value)
        if enabled_only and not conn.enabled:
            continue
        connections[name] = conn
    return connections
