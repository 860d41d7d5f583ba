"""Rate limiting middleware.

Wraps a ``RateLimiter`` as Starlette/FastAPI middleware: denied requests get
the limiter's denial response, allowed requests get rate limit headers.
"""

from typing import Any, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from windowguard.core.config import settings
from windowguard.core.logging import get_log_context, get_logger
from windowguard.exceptions import StorageError
from windowguard.limiter import RateLimiter, create_rate_limiter

logger = get_logger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limits on requests.

    When the counter store fails, the request either passes through
    (fail-open, the default) or is answered with 503 (fail-closed).

    A limiter passed in stays owned by the caller, who closes it (for example
    in the app lifespan). A limiter built here from keyword arguments is
    owned by the middleware and released by ``aclose()``.
    """

    def __init__(
        self,
        app,
        limiter: Optional[RateLimiter] = None,
        fail_closed: Optional[bool] = None,
        **limiter_kwargs: Any,
    ):
        """Initialize the middleware.

        Args:
            app: ASGI application
            limiter: Pre-built limiter; built from settings and
                ``limiter_kwargs`` when omitted
            fail_closed: Reject requests on storage failure (defaults to
                settings.rate_limit_fail_closed)
            **limiter_kwargs: Forwarded to create_rate_limiter
        """
        super().__init__(app)
        self._owns_limiter = limiter is None
        self.limiter = limiter if limiter is not None else create_rate_limiter(**limiter_kwargs)
        self.fail_closed = settings.rate_limit_fail_closed if fail_closed is None else fail_closed

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        try:
            evaluation = await self.limiter.evaluate(request)
        except StorageError as e:
            context = get_log_context(
                backend=e.backend,
                request_id=request.headers.get("X-Request-ID"),
            )
            if self.fail_closed:
                logger.error(f"Rate limit storage unavailable, rejecting request: {e}", extra=context)
                return JSONResponse(
                    status_code=e.status_code,
                    content={"error": "Service Unavailable", "detail": "Rate limiter unavailable"},
                )
            logger.warning(f"Rate limit storage unavailable, allowing request: {e}", extra=context)
            return await call_next(request)

        if evaluation.denial_response is not None:
            return evaluation.denial_response

        response = await call_next(request)
        return evaluation.apply_headers(response)

    async def aclose(self) -> None:
        """Close the limiter if this middleware created it."""
        if self._owns_limiter:
            await self.limiter.close()
