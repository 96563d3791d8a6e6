"""Middleware registration."""

from fastapi import FastAPI

from dna_community.config import Settings
from dna_community.middleware.cors import setup_cors
from dna_community.middleware.error_handler import setup_error_handlers
from dna_community.middleware.logging import setup_logging
from dna_community.middleware.rate_limit import RateLimitMiddleware
from dna_community.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order, so CORS is added last to wrap
    everything (including 429 responses) and the request id is bound before the
    rate limiter logs anything.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
