import time
from fastapi import Request

from fleet.src import schemas
from fleet.src.constants import REQUEST_TIMEOUT
from fleet.src.redis import StateCache, redisClient


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Args:
        request (Request): FastAPI request object.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
            - app_id (int): Application ID from app state.
    """
    return schemas.RequestInfo(
        method=request.method,
        path=request.url.path,
        app_id=request.scope["app"].state.id,
    )


def deadline() -> float:
    """Monotonic instant after which the request's storage work is abandoned."""
    return time.monotonic() + REQUEST_TIMEOUT


def stateCache() -> StateCache:
    """SSO state cache backed by the shared Redis client."""
    return StateCache(redisClient)
