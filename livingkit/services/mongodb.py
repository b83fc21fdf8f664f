import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..core.config import Config, Connection


logger = logging.getLogger(__name__)


def _uri_value(value: Any) -> str:
    # MongoDB URI options only accept lowercase booleans
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def default_mongo_client_options(conn: Connection) -> Dict[str, Any]:
    """Build ``MongoClient`` keyword arguments from a connection record.

    Entries of ``conn.options`` become URI query parameters; the returned dict
    can be updated before being passed to ``MongoClient(**options)``.
    """
    query = urlencode({key: _uri_value(value) for key, value in conn.options.items()})
    uri = f"mongodb://{conn.address}/{conn.name}"
    if query:
        uri = f"{uri}?{query}"
    options: Dict[str, Any] = {
        "host": uri,
        "authSource": Config.MONGO_AUTHENTICATION_DB,
    }
    if conn.user:
        options["username"] = conn.user
        options["password"] = conn.password
    return options


def new_mongo_connection(conn: Connection, timeout_seconds: float = 10, **overrides: Any) -> MongoClient:
    logger.info(f"initialize db with address: {conn.address}, user: {conn.user}")
    options = default_mongo_client_options(conn)
    options.setdefault("serverSelectionTimeoutMS", int(timeout_seconds * 1000))
    options.setdefault("connectTimeoutMS", int(timeout_seconds * 1000))
    options.setdefault("tz_aware", True)
    options.update(overrides)
    try:
        return MongoClient(**options)
    except PyMongoError as e:
        logger.error(f"unable to construct connection for address: {conn.address}, error: {e}")
        raise


@dataclass
class CommonField:
    initial: bool = False
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        """Return the BSON document, stamping unset timestamps with the current UTC time."""
        now = datetime.now(timezone.utc)
        return {
            "initial": self.initial,
            "description": self.description,
            "created_at": self.created_at or now,
            "updated_at": self.updated_at or now,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CommonField":
        return cls(
            initial=bool(doc.get("initial", False)),
            description=doc.get("description", ""),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )
