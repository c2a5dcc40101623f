"""Per-client request limiting applied to every route through slowapi."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from fixit_api.core import config
from fixit_api.core.errors import error_body

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = 'Too many requests, please try again later.'


def build_limit(max_requests: int, window_seconds: int) -> str:
    return f'{max_requests}/{window_seconds} seconds'


DEFAULT_LIMIT = build_limit(config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_SECONDS)


def create_limiter(limit: str = DEFAULT_LIMIT, enabled: bool = config.RATE_LIMIT_ENABLED) -> Limiter:
    # Keyed on the socket peer; forwarded-for headers are client controlled.
    return Limiter(
        key_func=get_remote_address,
        default_limits=[limit],
        headers_enabled=True,
        enabled=enabled,
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning('Rate limit exceeded for %s: %s', get_remote_address(request), exc.detail)
    response = JSONResponse(status_code=429, content=error_body(RATE_LIMIT_MESSAGE))
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
