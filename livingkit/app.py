import logging
import re
from typing import Callable, Optional, TextIO

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .core.middleware import DebugLogRequestData, install_recovery
from .core.response import response_ok

logger = logging.getLogger(__name__)

# Matches `{name:converter}` path params such as `/files/{path:path}`.
ROUTE_PARAM_CONVERTER_RE = re.compile(r"\{(\w+):[^}]*\}")


def normalize_route_path(path: str) -> str:
    return ROUTE_PARAM_CONVERTER_RE.sub(r"{\1}", path)


def list_apis(app: FastAPI) -> Callable[[], JSONResponse]:
    """Build an endpoint listing every registered HTTP route of ``app``.

    Each method of a route gets its own entry with the normalised path and the
    dotted name of the endpoint handling it.
    """

    async def apis() -> JSONResponse:
        items = []
        for route in app.routes:
            methods = getattr(route, "methods", None)
            if not methods:
                continue
            endpoint = getattr(route, "endpoint", None)
            handler_name = f"{endpoint.__module__}.{endpoint.__qualname__}" if endpoint else route.name
            for method in sorted(methods):
                items.append({
                    "path": normalize_route_path(route.path),
                    "method": method,
                    "lastHandlerName": handler_name,
                })
        return response_ok(200, {"apis": items})

    return apis


def create_server(debug_out: Optional[TextIO] = None, recovery_out: Optional[TextIO] = None, **kwargs) -> FastAPI:
    """Return a FastAPI app with JSON recovery, request debug logging and ``GET /apis``.

    Extra keyword arguments go to ``FastAPI()``.
    """
    kwargs.setdefault("title", "livingkit")
    kwargs.setdefault("redirect_slashes", False)
    app = FastAPI(**kwargs)

    # Recovery is added last so it wraps the debug logger.
    app.add_middleware(DebugLogRequestData, out=debug_out)
    install_recovery(app, out=recovery_out)

    app.add_api_route("/apis", list_apis(app), methods=["GET"])
    return app
