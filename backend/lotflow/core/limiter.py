"""
Rate limiting with slowapi.

A module-level limiter so endpoints can decorate routes at import time;
apply_rate_limiting() wires its middleware and 429 handler into the app.
"""
from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)


def apply_rate_limiting(app: FastAPI) -> Limiter:
    """Attach the limiter, its exception handler and middleware to `app`."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter
