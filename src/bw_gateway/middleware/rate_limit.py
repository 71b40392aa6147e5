"""Rate limiting middleware for secret-code submission endpoints.

Throttles guessing of escrow confirmation codes and barter pickup PINs:

  POST /api/v1/escrow/confirm
  POST /api/v1/barter/offers/{offer_id}/verify-pickup

Fixed one-minute window in Redis (INCR + EXPIRE). Key pattern:
"ratelimit:{user:<id> | ip:<addr>}:{endpoint_group}". The user id is read
from the Bearer token when it verifies, otherwise the client IP is used
(first X-Forwarded-For hop when behind a proxy).

If Redis is unreachable the request is let through and the failure logged.
"""

import logging
import re
from collections.abc import Awaitable, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.bw_common.errors import InvalidCredentialsError, RateLimitError
from src.bw_common.redis_client import get_redis
from src.bw_common.response import error_response, request_id_of
from src.bw_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

_LIMITED_ENDPOINTS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("escrow_confirm", re.compile(r"^/api/v1/escrow/confirm/?$")),
    ("barter_verify", re.compile(r"^/api/v1/barter/offers/[^/]+/verify-pickup/?$")),
)


def endpoint_group(method: str, path: str) -> str | None:
    if method != "POST":
        return None
    for group, pattern in _LIMITED_ENDPOINTS:
        if pattern.match(path):
            return group
    return None


def client_key(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            sub = decode_token(token).get("sub")
        except InvalidCredentialsError:
            sub = None
        if sub:
            return f"user:{sub}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit_per_minute: int = settings.CONFIRM_RATE_LIMIT_PER_MINUTE,
        redis_factory: Callable[[], Awaitable[Redis]] = get_redis,
    ) -> None:
        super().__init__(app)
        self._limit = limit_per_minute
        self._redis_factory = redis_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = endpoint_group(request.method, request.url.path)
        if group is None:
            return await call_next(request)

        key = f"ratelimit:{client_key(request)}:{group}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
            retry_after = await redis.ttl(key) if count > self._limit else 0
        except (RedisError, OSError):
            logger.exception("Rate limiter unavailable, allowing request: key=%s", key)
            return await call_next(request)

        if count > self._limit:
            logger.warning("Rate limit exceeded: key=%s count=%d", key, count)
            err = RateLimitError()
            resp = error_response(err.code, err.message, request_id_of(request))
            return JSONResponse(
                status_code=err.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(max(int(retry_after), 1))},
            )
        return await call_next(request)
